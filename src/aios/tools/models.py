"""
aios Tool System Models

Pydantic models for tool descriptors and the tool-invocation protocol.
A backend tool server receives a ToolRequest and answers with a
ToolResponse, whether it runs in-process, as a subprocess, or remotely.
"""

from __future__ import annotations

import uuid
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from aios.core.models import ExecutionMode, RiskLevel

# Validated identifier used as the registry key
ToolName = Annotated[str, StringConstraints(pattern=r"^[a-z][a-z0-9_]{0,63}$")]


class ToolDescriptor(BaseModel):
    """Static description of one backend operation.

    Registered once and immutable afterwards. `keywords` and
    `parameter_hints` feed the rule-based intent resolver.
    """
    model_config = ConfigDict(frozen=True)

    name: ToolName
    description: str = ""
    parameter_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    risk_hint: RiskLevel = RiskLevel.SAFE
    dry_run_capable: bool = False
    keywords: list[str] = Field(default_factory=list)
    parameter_hints: dict[str, list[str]] = Field(default_factory=dict)
    timeout_seconds: float | None = Field(default=None, gt=0.0)
    safe_interrupt: bool = False

    @property
    def properties(self) -> dict[str, Any]:
        return self.parameter_schema.get("properties", {})

    @property
    def required(self) -> list[str]:
        return list(self.parameter_schema.get("required", []))


class ContentBlock(BaseModel):
    """One piece of tool output."""
    model_config = ConfigDict(frozen=True)

    type: Literal["text", "structured"] = "text"
    value: Any = ""


class ToolRequest(BaseModel):
    """Request half of the tool-invocation protocol."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"tr-{uuid.uuid4().hex[:8]}")
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    mode: ExecutionMode = ExecutionMode.DRY_RUN


class ToolResponse(BaseModel):
    """Response half of the tool-invocation protocol."""
    model_config = ConfigDict(frozen=True)

    id: str = ""
    content: list[ContentBlock] = Field(default_factory=list)
    is_error: bool = False

    @property
    def text(self) -> str:
        """Concatenated text blocks."""
        return "\n".join(str(b.value) for b in self.content if b.type == "text")

    @property
    def structured(self) -> dict[str, Any]:
        """Merged structured blocks (later blocks win on key clashes)."""
        merged: dict[str, Any] = {}
        for block in self.content:
            if block.type == "structured" and isinstance(block.value, dict):
                merged.update(block.value)
        return merged

    @classmethod
    def from_text(cls, text: str, is_error: bool = False, request_id: str = "") -> ToolResponse:
        return cls(id=request_id, content=[ContentBlock(type="text", value=text)], is_error=is_error)
