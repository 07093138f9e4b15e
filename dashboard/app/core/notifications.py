import logging
from collections import deque
from typing import Literal

from pydantic import BaseModel

from dashboard.app.core.errors import DashboardError


logger = logging.getLogger(__name__)

Variant = Literal["default", "destructive"]


class Notification(BaseModel):
    title: str
    description: str = ""
    variant: Variant = "default"


class Notifier:
    """Queue of user-facing notifications, drained by the view."""

    def __init__(self, maxlen: int = 100) -> None:
        self._pending: deque[Notification] = deque(maxlen=maxlen)

    def notify(self, title: str, description: str = "", variant: Variant = "default") -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        if variant == "destructive":
            logger.warning("%s: %s", title, description)
        else:
            logger.info("%s: %s", title, description)
        self._pending.append(notification)
        return notification

    def error(self, exc: DashboardError, title: str | None = None) -> Notification:
        return self.notify(title or exc.title, exc.message, variant="destructive")

    def drain(self) -> list[Notification]:
        drained = list(self._pending)
        self._pending.clear()
        return drained
