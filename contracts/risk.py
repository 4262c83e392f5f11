"""Risk vocabulary shared by every guardrail.

Three tiers, totally ordered by severity: auto < soft < hard.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from pydantic import BaseModel


class RiskTier(str, Enum):
    AUTO = "auto"    # safe to run unattended
    SOFT = "soft"    # reversible, worth a preview
    HARD = "hard"    # destructive or irreversible, needs confirmation

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RiskTier):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other: object) -> bool:
        if not isinstance(other, RiskTier):
            return NotImplemented
        return self.severity <= other.severity

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, RiskTier):
            return NotImplemented
        return self.severity > other.severity

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, RiskTier):
            return NotImplemented
        return self.severity >= other.severity


_SEVERITY = {RiskTier.AUTO: 0, RiskTier.SOFT: 1, RiskTier.HARD: 2}


def max_risk(tiers: Iterable[RiskTier]) -> RiskTier:
    """Return the most severe tier, or AUTO for an empty iterable."""
    return max(tiers, key=lambda t: t.severity, default=RiskTier.AUTO)


class RiskMeta(BaseModel):
    """Display triple for a risk tier (plus the CSS hook the UI uses)."""

    icon: str
    label: str
    color: str
    css_class: str
