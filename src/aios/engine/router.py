"""
aios Command Router

Turns one raw utterance into a typed Command:

1. Normalize: trim, drop control characters and directive prefixes
2. Split into clauses on ";" and "then"; split on "and" only where the
   right-hand side stands on its own as a different tool; a folded-in
   right-hand side the reading does not explain is refused
3. Resolve each clause through the pluggable IntentResolver
4. Apply schema defaults, flag missing required parameters
5. Describe the command and derive risk through the RiskClassifier

Routing never guesses: no plausible match, a tool reference absent
from the registry, or a weak match on a destructive tool all raise
UnresolvedIntentError.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from aios.config import AssistantConfig
from aios.core.models import Command, RiskLevel
from aios.engine.risk_classifier import RiskClassifier
from aios.exceptions import UnresolvedIntentError
from aios.intent.extract import PRONOUNS, STOPWORDS, overlaps, tokens
from aios.intent.resolver import IntentCandidate, IntentResolver, RuleBasedResolver
from aios.logging import get_logger
from aios.tools.registry import ToolRegistry

logger = get_logger("aios.engine.router")

_CONTROL = re.compile(r"[\x00-\x1f\x7f]+")
_DIRECTIVE = re.compile(r"^(?:[/!>$]+|(?:please|aios|sudo)\b[\s,:]*)\s*", re.IGNORECASE)
_HARD_SPLIT = re.compile(r"\s*;\s*|,?\s+(?:and\s+)?then\s+", re.IGNORECASE)
_SOFT_SPLIT = re.compile(r"\s+and\s+", re.IGNORECASE)


def normalize(utterance: str) -> str:
    """Strip control characters, directive prefixes and surrounding noise."""
    text = _CONTROL.sub(" ", utterance).strip()
    while True:
        stripped = _DIRECTIVE.sub("", text, count=1)
        if stripped == text:
            break
        text = stripped
    return re.sub(r"\s+", " ", text).strip(" .!?")


@dataclass
class _Clause:
    text: str
    candidate: IntentCandidate | None = None
    params: dict[str, Any] = field(default_factory=dict)


class CommandRouter:
    """Routes utterances to Commands against a live ToolRegistry."""

    def __init__(
        self,
        registry: ToolRegistry,
        resolver: IntentResolver | None = None,
        classifier: RiskClassifier | None = None,
        config: AssistantConfig | None = None,
    ):
        self._registry = registry
        self._resolver = resolver or RuleBasedResolver()
        self._classifier = classifier or RiskClassifier()
        self._config = config or AssistantConfig()

    @property
    def resolver(self) -> IntentResolver:
        return self._resolver

    async def route(self, utterance: str, registry: ToolRegistry | None = None) -> Command:
        """Resolve `utterance` into a Command.

        Raises:
            UnresolvedIntentError: nothing plausible matched, or a
                destructive tool matched only weakly.
        """
        registry = registry or self._registry
        text = normalize(utterance)
        if not text:
            raise UnresolvedIntentError(utterance, "Say what you want done, e.g. 'install nginx'.")

        clauses = await self._split(text, registry)

        tools: list[str] = []
        params: dict[str, dict[str, Any]] = {}
        missing: dict[str, list[str]] = {}
        confidences: list[float] = []
        previous: dict[str, Any] | None = None

        for clause in clauses:
            candidate = self._accept(clause, registry)
            clause_params = _carry_pronouns(candidate.params, previous, registry)
            name = candidate.tool_name
            previous = {"tool": name, "params": clause_params}
            confidences.append(candidate.confidence)
            if name in tools:
                continue

            filled = registry.apply_defaults(name, clause_params)
            tools.append(name)
            params[name] = filled
            absent = registry.missing_required(name, filled)
            if absent:
                missing[name] = absent

        risk_level, needs_confirmation = self._classifier.assess(tools, registry)
        command = Command(
            utterance=utterance,
            intent=tools[0],
            tools=tools,
            params=params,
            risk_level=risk_level,
            confirmation_required=needs_confirmation,
            description=self.describe(tools, params, missing, registry),
            incomplete=bool(missing),
            missing_params=missing,
            confidence=min(confidences),
        )

        logger.info(
            "Routed utterance to %s",
            ", ".join(tools),
            extra={
                "command_id": command.id,
                "intent": command.intent,
                "risk_level": risk_level.value,
                "event_type": "ROUTED",
            },
        )
        return command

    # ─── Clause handling ───────────────────────────────────

    async def _split(self, text: str, registry: ToolRegistry) -> list[_Clause]:
        clauses: list[_Clause] = []
        for segment in _HARD_SPLIT.split(text):
            segment = segment.strip(" ,")
            if not segment:
                continue
            pieces = _SOFT_SPLIT.split(segment)
            current = _Clause(pieces[0])
            current.candidate = await self._best(current.text, registry)
            for piece in pieces[1:]:
                right = _Clause(piece)
                right.candidate = await self._best(piece, registry)
                if self._stands_alone(right, current, registry):
                    clauses.append(current)
                    current = right
                else:
                    merged = _Clause(f"{current.text} and {piece}")
                    merged.candidate = await self._best(merged.text, registry)
                    if _unexplained(piece, len(current.text) + len(" and "), merged.candidate):
                        raise UnresolvedIntentError(
                            piece,
                            "It does not fit the rest of the request; make it a separate step with 'then'.",
                        )
                    current = merged
            clauses.append(current)
        return clauses

    async def _best(self, clause: str, registry: ToolRegistry) -> IntentCandidate | None:
        candidates = await self._resolver.resolve(clause, registry)
        known = [c for c in candidates if c.tool_name in registry]
        if len(known) < len(candidates):
            logger.warning(
                "Dropped candidates for unregistered tools",
                extra={"event_type": "UNKNOWN_TOOL_CANDIDATE"},
            )
        return known[0] if known else None

    def _stands_alone(self, right: _Clause, left: _Clause, registry: ToolRegistry) -> bool:
        """Whether "<left> and <right>" is two requests rather than one."""
        if left.candidate is None or right.candidate is None:
            return False
        if right.candidate.tool_name == left.candidate.tool_name:
            return False
        if right.candidate.confidence < self._config.min_confidence:
            return False
        carried = _carry_pronouns(
            right.candidate.params,
            {"tool": left.candidate.tool_name, "params": left.candidate.params},
            registry,
        )
        filled = registry.apply_defaults(right.candidate.tool_name, carried)
        return not registry.missing_required(right.candidate.tool_name, filled)

    def _accept(self, clause: _Clause, registry: ToolRegistry) -> IntentCandidate:
        candidate = clause.candidate
        if candidate is None or candidate.confidence < self._config.min_confidence:
            raise UnresolvedIntentError(clause.text)

        descriptor = registry.lookup(candidate.tool_name)
        if (
            descriptor.risk_hint == RiskLevel.DESTRUCTIVE
            and candidate.confidence < self._config.destructive_min_confidence
        ):
            logger.warning(
                "Refused weak match on destructive tool",
                extra={
                    "tool_name": candidate.tool_name,
                    "risk_level": RiskLevel.DESTRUCTIVE.value,
                    "event_type": "DESTRUCTIVE_GUARD",
                },
            )
            raise UnresolvedIntentError(
                clause.text,
                f"This looks like '{candidate.tool_name}', which is destructive; "
                "be more specific about what you want done.",
                details={"tool_name": candidate.tool_name, "confidence": candidate.confidence},
            )
        return candidate

    # ─── Description ───────────────────────────────────────

    def describe(
        self,
        tools: list[str],
        params: dict[str, dict[str, Any]],
        missing: dict[str, list[str]],
        registry: ToolRegistry,
    ) -> str:
        """One sentence naming every tool and every parameter it will use."""
        parts = []
        for name in tools:
            descriptor = registry.lookup(name)
            values = params.get(name, {})
            ordered = [k for k in descriptor.properties if k in values]
            ordered += [k for k in values if k not in ordered]
            part = descriptor.description
            if ordered:
                part += ": " + ", ".join(f"{k}={_format(values[k])}" for k in ordered)
            if missing.get(name):
                part += f" (missing: {', '.join(missing[name])})"
            parts.append(part)
        return "; then ".join(parts)


def _unexplained(piece: str, offset: int, candidate: IntentCandidate | None) -> bool:
    """Whether merging `piece` at `offset` would silently drop it from the reading."""
    if candidate is None or not candidate.spans:
        return False
    content = [(offset + s, offset + e) for s, e, word in tokens(piece) if word and word not in STOPWORDS]
    return bool(content) and not any(overlaps(span, candidate.spans) for span in content)


def _carry_pronouns(
    params: dict[str, Any],
    previous: dict[str, Any] | None,
    registry: ToolRegistry | None = None,
) -> dict[str, Any]:
    """Replace "it"/"them"/"that" with the previous clause's main subject."""
    if previous is None:
        return dict(params)
    subject = _subject(previous, registry)
    carried = {}
    for key, value in params.items():
        if isinstance(value, str) and value.lower() in PRONOUNS:
            if subject is None:
                continue
            value = subject
        carried[key] = value
    return carried


def _subject(previous: dict[str, Any], registry: ToolRegistry | None) -> str | None:
    params = previous["params"]
    required: list[str] = []
    if registry is not None and previous["tool"] in registry:
        required = registry.lookup(previous["tool"]).required
    for key in [*required, *params]:
        value = params.get(key)
        if isinstance(value, str) and value.lower() not in PRONOUNS:
            return value
    return None


def _format(value: Any) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, list):
        return " ".join(str(v) for v in value) or "none"
    return str(value)
