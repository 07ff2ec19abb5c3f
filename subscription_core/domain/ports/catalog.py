from __future__ import annotations

from typing import Iterable, Protocol

from ..models import Plan


class PlanCatalog(Protocol):
    """Read-only mapping from plan key to ``Plan``."""

    def lookup(self, plan_key: str) -> Plan:
        """Return the plan or raise ``NotFoundError``."""
        ...

    def __contains__(self, plan_key: object) -> bool:
        ...

    def keys(self) -> Iterable[str]:
        ...
