"""
aios Risk Classifier

Derives the risk of a command from the tools it references and decides
whether the operator has to confirm it.

Classification:
  risk(command) = max(risk_hint of every referenced tool)
  order: SAFE < MODERATE < DESTRUCTIVE

Confirmation matrix:
  SAFE        -> run without confirmation
  MODERATE    -> confirmation required
  DESTRUCTIVE -> confirmation required

The classifier is pure: the same tool set against the same registry
always yields the same answer.
"""

from __future__ import annotations

from collections.abc import Iterable

from aios.core.models import Command, RiskLevel
from aios.exceptions import StaleToolReferenceError
from aios.tools.registry import ToolRegistry


class RiskClassifier:
    """Maps referenced tools to a command risk level."""

    _ORDER: dict[RiskLevel, int] = {
        RiskLevel.SAFE: 0,
        RiskLevel.MODERATE: 1,
        RiskLevel.DESTRUCTIVE: 2,
    }

    _CONFIRMATION: dict[RiskLevel, bool] = {
        RiskLevel.SAFE: False,
        RiskLevel.MODERATE: True,
        RiskLevel.DESTRUCTIVE: True,
    }

    def classify(self, tools: Command | Iterable[str], registry: ToolRegistry) -> RiskLevel:
        """Highest risk hint among the referenced tools.

        Raises StaleToolReferenceError if any tool is not registered.
        """
        names = list(tools.tools if isinstance(tools, Command) else tools)
        missing = registry.missing(names)
        if missing:
            raise StaleToolReferenceError(missing)

        return self.max_level(registry.lookup(name).risk_hint for name in names)

    def requires_confirmation(self, level: RiskLevel) -> bool:
        # unknown levels fail closed
        return self._CONFIRMATION.get(level, True)

    def assess(self, tools: Command | Iterable[str], registry: ToolRegistry) -> tuple[RiskLevel, bool]:
        level = self.classify(tools, registry)
        return level, self.requires_confirmation(level)

    @classmethod
    def max_level(cls, levels: Iterable[RiskLevel]) -> RiskLevel:
        return max(levels, key=lambda lvl: cls._ORDER[lvl], default=RiskLevel.SAFE)

    def explain(self, level: RiskLevel) -> str:
        if level == RiskLevel.SAFE:
            return "Risk=safe: read-only, runs without confirmation"
        if level == RiskLevel.MODERATE:
            return "Risk=moderate: changes system state, confirmation required"
        return "Risk=destructive: hard to reverse, confirmation required"
