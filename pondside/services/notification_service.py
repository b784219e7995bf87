"""
Notification delivery and the best-effort side-effect runner.

Anything that happens after a primary transaction commits (notifications,
achievement checks, cache invalidation) goes through `run_side_effect`.
It bounds the time spent, logs failures as dependency errors, counts them,
and never lets them reach the caller: a check-in that committed is a
check-in, whatever the notifier does.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from pondside.core.config import get_settings
from pondside.core.errors import DependencyError
from pondside.core.logging import get_logger
from pondside.core.metrics import record_side_effect_failure
from pondside.services.interfaces.notifier import Notification, Notifier

logger = get_logger(__name__)

T = TypeVar("T")


class LoggingNotifier(Notifier):
    """Writes notifications to the structured log instead of delivering them."""

    async def notify(self, notification: Notification) -> None:
        logger.info(
            "notification_dispatched",
            user_id=notification.user_id,
            type=notification.type,
            title=notification.title,
            priority=notification.priority,
        )


async def run_side_effect(
    effect: str,
    awaitable: Awaitable[T],
    timeout: Optional[float] = None,
    default: Optional[T] = None,
) -> Optional[T]:
    """
    Await a best-effort side effect.

    Returns the effect's result, or `default` if it failed or timed out.
    """
    timeout = timeout if timeout is not None else get_settings().SIDE_EFFECT_TIMEOUT
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        error = DependencyError(f"{effect} failed: {e}", effect=effect)
        logger.warning(
            "side_effect_failed",
            effect=effect,
            kind=error.kind,
            error=str(e),
            error_type=type(e).__name__,
        )
        record_side_effect_failure(effect)
        return default


async def notify_best_effort(notifier: Notifier, notification: Notification) -> bool:
    """Send one notification; True if the notifier accepted it."""
    async def _send() -> bool:
        await notifier.notify(notification)
        return True

    return bool(await run_side_effect(f"notify:{notification.type}", _send(), default=False))
