"""Tests for the RiskClassifier."""

import itertools

import pytest

from aios.core.models import Command, RiskLevel
from aios.engine.risk_classifier import RiskClassifier
from aios.exceptions import StaleToolReferenceError

TOOLS_BY_RISK = {
    RiskLevel.SAFE: "read_status",
    RiskLevel.MODERATE: "apply_change",
    RiskLevel.DESTRUCTIVE: "wipe_disk",
}
RANK = [RiskLevel.SAFE, RiskLevel.MODERATE, RiskLevel.DESTRUCTIVE]


class TestClassify:
    @pytest.mark.parametrize(
        "levels",
        [combo for n in (1, 2, 3) for combo in itertools.product(RANK, repeat=n)],
    )
    def test_max_of_referenced_tools(self, registry, levels):
        tools = list(dict.fromkeys(TOOLS_BY_RISK[level] for level in levels))
        expected = max(levels, key=RANK.index)
        assert RiskClassifier().classify(tools, registry) == expected

    def test_accepts_command(self, registry):
        command = Command(intent="read_status", tools=["read_status", "wipe_disk"])
        assert RiskClassifier().classify(command, registry) == RiskLevel.DESTRUCTIVE

    def test_stale_reference(self, registry):
        with pytest.raises(StaleToolReferenceError) as exc_info:
            RiskClassifier().classify(["read_status", "vanished"], registry)
        assert exc_info.value.tool_names == ["vanished"]

    def test_pure(self, registry):
        classifier = RiskClassifier()
        results = {classifier.classify(["apply_change", "read_status"], registry) for _ in range(5)}
        assert results == {RiskLevel.MODERATE}

    def test_max_level_defaults_to_safe(self):
        assert RiskClassifier.max_level([]) == RiskLevel.SAFE


class TestConfirmation:
    @pytest.mark.parametrize(
        "level,required",
        [
            (RiskLevel.SAFE, False),
            (RiskLevel.MODERATE, True),
            (RiskLevel.DESTRUCTIVE, True),
        ],
    )
    def test_matrix(self, level, required):
        assert RiskClassifier().requires_confirmation(level) is required

    def test_assess(self, registry):
        assert RiskClassifier().assess(["read_status"], registry) == (RiskLevel.SAFE, False)
        assert RiskClassifier().assess(["wipe_disk"], registry) == (RiskLevel.DESTRUCTIVE, True)

    def test_explain(self):
        classifier = RiskClassifier()
        assert "without confirmation" in classifier.explain(RiskLevel.SAFE)
        assert "confirmation required" in classifier.explain(RiskLevel.DESTRUCTIVE)
