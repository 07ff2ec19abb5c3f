"""Polymorphic reference to whatever entity owns a subscription."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class SubjectRef:
    entity_type: str
    entity_id: str

    def __str__(self) -> str:
        return f"{self.entity_type}:{self.entity_id}"


@runtime_checkable
class Subject(Protocol):
    """Capability any subscription owner must provide."""

    def human_description_for_subscription(self) -> str:
        ...
