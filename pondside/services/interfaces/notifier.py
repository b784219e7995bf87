"""
Notification dispatch interface.

Delivery (push, SMS, in-app inbox) is owned by another service. The engine
only hands over a message after its own transaction has committed and does
not care whether delivery succeeds.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Notification:
    user_id: int
    type: str  # CHECK_IN, SEAT_SHARED, ROD_PRINTED, CATCH_RECORDED, ACHIEVEMENT
    title: str
    message: str
    priority: str = "medium"
    action_url: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


class Notifier(ABC):
    """
    Interface for notification delivery.

    Implementations:
    - LoggingNotifier: writes the notification to the structured log
    - HTTP/queue notifiers live with the notification service
    """

    @abstractmethod
    async def notify(self, notification: Notification) -> None:
        """
        Hand a notification over for delivery.

        May raise; callers run this through `run_side_effect`, which logs
        and swallows failures.
        """
        pass
