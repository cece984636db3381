"""Transient, dismissible user-facing notices."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="notices")

INVALID_ADDRESS = "Invalid Address"


class NoticeLevel(str, Enum):
    """Visual weight of a notice."""
    DANGER = "danger"
    SUCCESS = "success"
    INFO = "info"


@dataclass(frozen=True)
class Notice:
    """A short message shown to the user for `duration` seconds."""
    level: NoticeLevel
    title: str
    duration: float = 3.0


class Notifier(Protocol):
    """Anything able to surface a notice to the user."""

    def show(self, notice: Notice) -> None:
        """Display the notice; must not block."""


class LoggingNotifier:
    """Notifier for headless use: notices are written to the log."""

    def show(self, notice: Notice) -> None:
        if notice.level is NoticeLevel.DANGER:
            logger.warning("Notice: %s", notice.title, extra={"duration": notice.duration})
        else:
            logger.info("Notice: %s", notice.title, extra={"duration": notice.duration})


def danger(title: str | None, duration: float = 3.0) -> Notice:
    """Build an error notice, falling back to a generic title."""
    return Notice(NoticeLevel.DANGER, title or "Something went wrong", duration)


def success(title: str, duration: float = 3.0) -> Notice:
    """Build a success notice."""
    return Notice(NoticeLevel.SUCCESS, title, duration)


def failure(action: str, exc: Exception, duration: float = 3.0) -> Notice:
    """Build an error notice for a failed `action`.

    Only messages the backend reported with an error code are shown verbatim;
    anything else (transport errors, local faults) is reduced to `action`.
    """
    if getattr(exc, "code", None) is not None and str(exc):
        return danger(str(exc), duration)
    return danger(action, duration)
