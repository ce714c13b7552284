"""User-facing notices raised while handling a request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Protocol

NoticeVariant = Literal["default", "destructive"]


@dataclass(slots=True, frozen=True)
class Notice:
    title: str
    description: str
    variant: NoticeVariant = "default"

    @classmethod
    def error(cls, description: str, *, title: str = "Error") -> "Notice":
        return cls(title=title, description=description, variant="destructive")

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"


class Notifier(Protocol):
    def notify(self, notice: Notice) -> None: ...


class NoticeCollector:
    """Collects notices for the current request so they can be returned to the client."""

    def __init__(self) -> None:
        self.notices: List[Notice] = []

    def notify(self, notice: Notice) -> None:
        self.notices.append(notice)
