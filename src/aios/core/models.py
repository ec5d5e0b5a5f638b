"""
aios Core Data Models

All shared types used across the assistant. This module is the foundation
that every other component imports from; it must have zero internal
dependencies beyond pydantic.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ─── Enums ───────────────────────────────────────────────────

class RiskLevel(str, Enum):
    """Risk classification for tools and commands."""
    SAFE = "safe"
    MODERATE = "moderate"
    DESTRUCTIVE = "destructive"


class ExecutionMode(str, Enum):
    """How a backend tool is asked to run."""
    DRY_RUN = "dry_run"
    EXECUTE = "execute"


class CommandState(str, Enum):
    """Lifecycle state of a command inside the safety executor."""
    PLANNED = "PLANNED"
    DRY_RUN = "DRY_RUN"
    CONFIRM_PENDING = "CONFIRM_PENDING"
    EXECUTING = "EXECUTING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class StepStatus(str, Enum):
    """How trustworthy a dry-run plan step is."""
    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    INVALID = "invalid"


class ToolOutcomeStatus(str, Enum):
    """Outcome of a single tool within an executed command."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    SKIPPED_PRIOR_FAILURE = "skipped-due-to-prior-failure"
    SKIPPED_CANCELLED = "skipped-cancelled"
    NOT_RUN = "not-run"


class ErrorKind(str, Enum):
    """Error taxonomy surfaced in execution results."""
    UNRESOLVED_INTENT = "UNRESOLVED_INTENT"
    INVALID_PARAMETER = "INVALID_PARAMETER"
    STALE_TOOL_REFERENCE = "STALE_TOOL_REFERENCE"
    TOOL_TIMEOUT = "TOOL_TIMEOUT"
    TOOL_EXECUTION = "TOOL_EXECUTION"
    CONFIRMATION_DECLINED = "CONFIRMATION_DECLINED"
    CANCELLED = "CANCELLED"


# ─── Errors ──────────────────────────────────────────────────

class ErrorInfo(BaseModel):
    """Serializable description of a failure, attached to results."""
    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    tool_name: str | None = None
    recoverable: bool = False


# ─── Command ─────────────────────────────────────────────────

class Command(BaseModel):
    """The typed result of routing one utterance.

    Created by the router, consumed once by the safety executor.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"cmd-{uuid.uuid4().hex[:8]}")
    utterance: str = ""
    intent: str
    tools: list[str] = Field(..., min_length=1)
    params: dict[str, dict[str, Any]] = Field(default_factory=dict)
    risk_level: RiskLevel = RiskLevel.SAFE
    confirmation_required: bool = False
    description: str = ""
    incomplete: bool = False
    missing_params: dict[str, list[str]] = Field(default_factory=dict)
    confidence: float = Field(1.0, ge=0.0, le=1.0)

    def params_for(self, tool_name: str) -> dict[str, Any]:
        return dict(self.params.get(tool_name, {}))


# ─── Dry Run ─────────────────────────────────────────────────

class PlanStep(BaseModel):
    """Projection of what one tool would do."""
    model_config = ConfigDict(frozen=True)

    tool: str
    rendered_action: str
    estimated_effect: str = ""
    status: StepStatus = StepStatus.VERIFIED
    details: dict[str, Any] = Field(default_factory=dict)
    error: ErrorInfo | None = None


class ExecutionPlan(BaseModel):
    """Side-effect-free projection of a command, one step per tool."""
    model_config = ConfigDict(frozen=True)

    command_id: str = ""
    steps: list[PlanStep] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return all(s.status != StepStatus.INVALID for s in self.steps)

    @property
    def first_error(self) -> ErrorInfo | None:
        for step in self.steps:
            if step.error is not None:
                return step.error
        return None

    def render(self) -> str:
        lines = []
        for i, step in enumerate(self.steps, start=1):
            marker = "" if step.status == StepStatus.VERIFIED else f" [{step.status.value}]"
            lines.append(f"{i}. {step.tool}{marker}: {step.rendered_action}")
        return "\n".join(lines)


class ConfirmationRequest(BaseModel):
    """Everything shown to the operator before a mutating command runs."""
    model_config = ConfigDict(frozen=True)

    command_id: str
    description: str
    tools: list[str]
    risk_level: RiskLevel
    plan: ExecutionPlan


# ─── Execution Result ────────────────────────────────────────

class ToolRunRecord(BaseModel):
    """Per-tool entry of an execution result."""
    model_config = ConfigDict(frozen=True)

    tool: str
    outcome: ToolOutcomeStatus
    output: str = ""
    duration_ms: float = 0.0
    error: ErrorInfo | None = None


class ExecutionResult(BaseModel):
    """Final, immutable outcome of executing a command."""
    model_config = ConfigDict(frozen=True)

    command_id: str = ""
    success: bool
    cancelled: bool = False
    state: CommandState
    output: str | dict[str, Any] = ""
    error: ErrorInfo | None = None
    per_tool_results: list[ToolRunRecord] = Field(default_factory=list)
    plan: ExecutionPlan | None = None

    @property
    def completed_tools(self) -> list[str]:
        return [
            r.tool for r in self.per_tool_results if r.outcome == ToolOutcomeStatus.SUCCEEDED
        ]


# ─── Audit ───────────────────────────────────────────────────

class AuditEntry(BaseModel):
    """One routed-and-executed utterance, kept for traceability."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"au-{uuid.uuid4().hex[:8]}")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    utterance: str = ""
    command: Command
    confirmed: bool = False
    result: ExecutionResult
