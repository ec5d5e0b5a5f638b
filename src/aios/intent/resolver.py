"""
aios Intent Resolution

Maps one clause of an utterance to ranked tool candidates. The router
only depends on the IntentResolver interface; three strategies exist:

- RuleBasedResolver: keyword + parameter-hint scoring, deterministic
- ModelResolver: asks Claude to pick a tool and fill its parameters
- HybridResolver: rules first, the model only when rules are unsure

Whatever the strategy, a candidate naming a tool that is not in the
registry is dropped rather than passed on.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

import anthropic
from pydantic import BaseModel, Field

from aios.config import DEFAULT_MODEL
from aios.intent.extract import coverage, extract_parameters, find_phrase
from aios.logging import get_logger
from aios.tools.models import ToolDescriptor
from aios.tools.registry import ToolRegistry

logger = get_logger("aios.intent")


class IntentCandidate(BaseModel):
    """One possible reading of a clause."""
    tool_name: str
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    params: dict[str, Any] = Field(default_factory=dict)
    keyword: str = ""
    source: str = "rules"
    # clause regions the reading explains; empty when the resolver cannot say
    spans: list[tuple[int, int]] = Field(default_factory=list)


class IntentResolver(ABC):
    """Strategy interface for turning a clause into tool candidates."""

    name: str = "resolver"

    @abstractmethod
    async def resolve(self, clause: str, registry: ToolRegistry) -> list[IntentCandidate]:
        """Return candidates best-first; empty when nothing matches."""


class RuleBasedResolver(IntentResolver):
    """Deterministic keyword scorer.

    Confidence is the share of meaningful words explained by the matched
    keyword and the extracted parameters. Ranking: confidence, then the
    longest keyword, then registry declaration order.
    """

    name = "rules"

    async def resolve(self, clause: str, registry: ToolRegistry) -> list[IntentCandidate]:
        return self.score(clause, registry)

    def score(self, clause: str, registry: ToolRegistry) -> list[IntentCandidate]:
        ranked: list[tuple[float, int, int, IntentCandidate]] = []
        for order, descriptor in enumerate(registry.descriptors()):
            match = _best_keyword(clause, descriptor)
            if match is None:
                continue
            keyword, span = match
            extraction = extract_parameters(clause, descriptor, taken=[span])
            confidence = round(coverage(clause, [span, *extraction.spans]), 4)
            ranked.append((
                confidence,
                len(keyword),
                -order,
                IntentCandidate(
                    tool_name=descriptor.name,
                    confidence=confidence,
                    params=extraction.params,
                    keyword=keyword,
                    source=self.name,
                    spans=[span, *extraction.spans],
                ),
            ))
        ranked.sort(key=lambda r: r[:3], reverse=True)
        return [r[3] for r in ranked]


def _best_keyword(clause: str, descriptor: ToolDescriptor) -> tuple[str, tuple[int, int]] | None:
    best: tuple[str, tuple[int, int]] | None = None
    for keyword in descriptor.keywords:
        match = find_phrase(clause, keyword)
        if match and (best is None or len(keyword) > len(best[0])):
            best = (keyword, match.span())
    return best


class ModelResolver(IntentResolver):
    """Resolves clauses with a Claude call, constrained to registered tools."""

    name = "model"

    def __init__(self, client: anthropic.AsyncAnthropic | None = None, model: str = DEFAULT_MODEL):
        self._client = client or anthropic.AsyncAnthropic()
        self._model = model

    async def resolve(self, clause: str, registry: ToolRegistry) -> list[IntentCandidate]:
        tools_text = json.dumps(registry.get_schemas(), indent=2)
        prompt = f"""You route system administration requests to tools.

REQUEST: {clause}

AVAILABLE TOOLS (name, description, JSON schema of parameters):
{tools_text}

RULES:
1. Pick exactly one tool from the list above, or none if nothing fits.
2. Never invent a tool name.
3. Fill only parameters the request states; omit the rest.
4. Confidence is your probability (0.0-1.0) that the tool is what the user wants.

Respond with a JSON object:
{{"tool": "tool_name or null", "confidence": 0.0, "params": {{}}}}

Return ONLY the JSON object, no other text."""

        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=512,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            logger.warning("Model intent resolution failed: %s", e, extra={"event_type": "RESOLVER_ERROR"})
            return []

        return self._parse_response(response.content[0].text, registry)

    def _parse_response(self, text: str, registry: ToolRegistry) -> list[IntentCandidate]:
        text = text.strip()
        start = text.find("{")
        end = text.rfind("}") + 1
        if start == -1 or end == 0:
            return []
        try:
            data = json.loads(text[start:end])
        except json.JSONDecodeError:
            return []
        if not isinstance(data, dict):
            return []

        tool = data.get("tool")
        if not tool:
            return []
        if tool not in registry:
            logger.warning(
                "Model proposed an unregistered tool",
                extra={"tool_name": str(tool), "event_type": "RESOLVER_UNKNOWN_TOOL"},
            )
            return []

        try:
            confidence = min(1.0, max(0.0, float(data.get("confidence", 0.0))))
        except (TypeError, ValueError):
            confidence = 0.0
        params = data.get("params") or {}
        if not isinstance(params, dict):
            params = {}
        return [IntentCandidate(tool_name=tool, confidence=confidence, params=params, source=self.name)]


class HybridResolver(IntentResolver):
    """Rules first; ask the model only when rules are not confident."""

    name = "hybrid"

    def __init__(
        self,
        rules: RuleBasedResolver | None = None,
        model: ModelResolver | None = None,
        fallback_confidence: float = 0.6,
    ):
        self._rules = rules or RuleBasedResolver()
        self._model = model or ModelResolver()
        self._fallback_confidence = fallback_confidence

    async def resolve(self, clause: str, registry: ToolRegistry) -> list[IntentCandidate]:
        ruled = await self._rules.resolve(clause, registry)
        if ruled and ruled[0].confidence >= self._fallback_confidence:
            return ruled

        modeled = await self._model.resolve(clause, registry)
        if not modeled:
            return ruled
        chosen = {c.tool_name for c in modeled}
        return modeled + [c for c in ruled if c.tool_name not in chosen]
