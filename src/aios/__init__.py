"""
aios: natural-language system administration core

Turns requests like "install oracle with 8GB memory" into typed,
risk-classified commands and runs them through a dry-run-first,
confirmation-gated executor backed by pluggable tool servers.

Usage:
    from aios import Session

    async with Session() as session:
        command = await session.route("install nginx")
        print(command.description, command.risk_level)
        result = await session.execute(command, confirm=ask_operator)

    # Model-assisted routing (needs ANTHROPIC_API_KEY):
    session = Session(resolver="hybrid")
"""

from aios.audit.audit_log import AuditLog
from aios.config import AssistantConfig
from aios.core.models import (
    AuditEntry,
    Command,
    CommandState,
    ConfirmationRequest,
    ErrorInfo,
    ErrorKind,
    ExecutionMode,
    ExecutionPlan,
    ExecutionResult,
    PlanStep,
    RiskLevel,
    StepStatus,
    ToolOutcomeStatus,
    ToolRunRecord,
)
from aios.engine.executor import SafetyExecutor
from aios.engine.risk_classifier import RiskClassifier
from aios.engine.router import CommandRouter
from aios.exceptions import (
    AiosError,
    BackendProtocolError,
    CommandCancelledError,
    ConfirmationDeclinedError,
    InvalidParameterError,
    StaleToolReferenceError,
    ToolExecutionError,
    ToolRegistrationError,
    ToolTimeoutError,
    UnresolvedIntentError,
)
from aios.intent.resolver import HybridResolver, IntentCandidate, IntentResolver, ModelResolver, RuleBasedResolver
from aios.session import Session
from aios.tools.models import ToolDescriptor
from aios.tools.registry import ToolRegistry

__version__ = "0.3.0"

__all__ = [
    # Main API
    "Session",
    "__version__",
    "AssistantConfig",
    # Models
    "AuditEntry",
    "Command",
    "CommandState",
    "ConfirmationRequest",
    "ErrorInfo",
    "ErrorKind",
    "ExecutionMode",
    "ExecutionPlan",
    "ExecutionResult",
    "PlanStep",
    "RiskLevel",
    "StepStatus",
    "ToolOutcomeStatus",
    "ToolRunRecord",
    # Engine
    "CommandRouter",
    "RiskClassifier",
    "SafetyExecutor",
    # Intent
    "HybridResolver",
    "IntentCandidate",
    "IntentResolver",
    "ModelResolver",
    "RuleBasedResolver",
    # Tools
    "ToolDescriptor",
    "ToolRegistry",
    # Audit
    "AuditLog",
    # Errors
    "AiosError",
    "BackendProtocolError",
    "CommandCancelledError",
    "ConfirmationDeclinedError",
    "InvalidParameterError",
    "StaleToolReferenceError",
    "ToolExecutionError",
    "ToolRegistrationError",
    "ToolTimeoutError",
    "UnresolvedIntentError",
]
