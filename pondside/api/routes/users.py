"""
Per-angler stats and achievements.
"""

from fastapi import APIRouter, Depends

from pondside.api.deps import get_clock, get_stats_service
from pondside.core.clock import Clock, venue_date
from pondside.core.config import get_settings
from pondside.schemas.common import Envelope
from pondside.schemas.weighing import AchievementResponse, UserStatsResponse
from pondside.services.stats_service import StatsService, streak_is_live

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/{user_id}/stats", response_model=Envelope[UserStatsResponse])
async def user_stats(
    user_id: int,
    service: StatsService = Depends(get_stats_service),
    clock: Clock = Depends(get_clock),
):
    stats = await service.get_stats(user_id)
    achievements = await service.list_achievements(user_id)
    today = venue_date(clock(), get_settings().VENUE_TIMEZONE)

    data = UserStatsResponse.model_validate(stats).model_copy(
        update={
            "streak_active": streak_is_live(stats, today),
            "achievements": [
                AchievementResponse(
                    code=grant.achievement.code,
                    name=grant.achievement.name,
                    description=grant.achievement.description,
                    category=grant.achievement.category,
                    unlocked_at=grant.unlocked_at,
                )
                for grant in achievements
            ],
        }
    )
    return Envelope(data=data)
