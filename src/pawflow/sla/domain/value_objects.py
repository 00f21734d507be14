"""
SLA Value Objects
==================
"""

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Writes performed by one reconciliation of a target.

    ``opened`` holds entity ids that got a new incident, ``resolved`` holds
    the ids of incidents that were closed.
    """

    target_id: str
    opened: List[str] = field(default_factory=list)
    resolved: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.opened or self.resolved)
