import logging
from datetime import datetime

from lifedeck.domain.ports import NotificationScheduler


class LoggingNotificationScheduler(NotificationScheduler):
    """Records wake intents and logs them; hosts with push delivery plug in their own."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.scheduled: dict[str, datetime] = {}

    def schedule_wake(self, card_id: str, at: datetime) -> None:
        # Re-snoozing a card replaces its earlier intent
        self.scheduled[card_id] = at
        self.logger.info(f"Wake scheduled for {card_id} at {at.isoformat(timespec='minutes')}")
