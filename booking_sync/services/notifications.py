"""
Notification collaborator for finished sync runs.

Delivery (email, in-app, push) belongs to another service; the engine only
hands it a :class:`SyncNotification`. ``LoggingNotifier`` is the default and
writes the notification to the structured log.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol
from uuid import UUID

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SyncNotification:
    tenant_id: UUID
    integration_id: UUID
    platform: str
    success: bool
    bookings_imported: int
    room_names: tuple[str, ...] = field(default_factory=tuple)
    conflicts: int = 0
    error_message: Optional[str] = None

    @property
    def title(self) -> str:
        if not self.success:
            return f"{self.platform} sync failed"
        return f"{self.platform} sync completed"

    @property
    def message(self) -> str:
        if not self.success:
            return self.error_message or "No bookings could be synced"
        rooms = ", ".join(self.room_names) if self.room_names else "no rooms"
        text = f"Imported {self.bookings_imported} booking(s) for {rooms}"
        if self.conflicts:
            text += f"; {self.conflicts} need review because they overlap existing bookings"
        return text


class Notifier(Protocol):
    def notify(self, notification: SyncNotification) -> None:
        ...


class LoggingNotifier:
    """Notifier that records sync outcomes in the structured log."""

    def notify(self, notification: SyncNotification) -> None:
        log = logger.bind(
            tenant_id=str(notification.tenant_id),
            integration_id=str(notification.integration_id),
            platform=notification.platform,
        )
        if notification.success:
            log.info("sync_notification", title=notification.title, message=notification.message)
        else:
            log.warning("sync_notification", title=notification.title, message=notification.message)
