"""
aios Session

The collaborator-facing surface of the core. A Session owns one router,
one safety executor and one audit log, and enforces the scheduling
model: at most one active command at a time, cancellation honored
between tool invocations.

Usage:
    async with Session() as session:
        command = await session.route("install nginx")
        plan = await session.plan_dry_run(command)
        result = await session.execute(command, confirm=lambda request: True)
"""

from __future__ import annotations

import asyncio
import inspect

import anthropic

from aios.audit.audit_log import AuditLog
from aios.config import AssistantConfig
from aios.core.models import AuditEntry, Command, ConfirmationRequest, ExecutionPlan, ExecutionResult
from aios.engine.executor import ConfirmCallback, SafetyExecutor
from aios.engine.risk_classifier import RiskClassifier
from aios.engine.router import CommandRouter
from aios.intent.resolver import HybridResolver, IntentResolver, ModelResolver, RuleBasedResolver
from aios.logging import configure_logging, get_logger
from aios.observability.metrics import record_command
from aios.tools.builtin import register_all_builtins
from aios.tools.registry import ToolRegistry

logger = get_logger("aios.session")

RESOLVERS = ("rule", "model", "hybrid")


def build_resolver(
    kind: str,
    config: AssistantConfig,
    client: anthropic.AsyncAnthropic | None = None,
) -> IntentResolver:
    """Resolver strategy by name: "rule", "model" or "hybrid"."""
    if kind == "rule":
        return RuleBasedResolver()
    if kind == "model":
        return ModelResolver(client, model=config.model)
    if kind == "hybrid":
        return HybridResolver(
            RuleBasedResolver(),
            ModelResolver(client, model=config.model),
            fallback_confidence=config.hybrid_fallback_confidence,
        )
    raise ValueError(f"Unknown resolver '{kind}', expected one of {', '.join(RESOLVERS)}")


class Session:
    """Routes and executes utterances one command at a time."""

    def __init__(
        self,
        registry: ToolRegistry | None = None,
        resolver: IntentResolver | str = "rule",
        config: AssistantConfig | None = None,
        audit_log: AuditLog | None = None,
        builtins: bool = True,
        client: anthropic.AsyncAnthropic | None = None,
        configure_logs: bool = False,
    ):
        """Create a session.

        Args:
            registry: Shared tool registry. A fresh one is created if None.
            resolver: An IntentResolver, or "rule" / "model" / "hybrid".
            config: Routing and execution settings.
            audit_log: Where executed commands are recorded.
            builtins: Register the built-in installation tools when the
                session creates its own registry.
            client: Anthropic client for model-backed resolvers.
            configure_logs: Apply config.log_level / config.log_json.
        """
        self.config = config or AssistantConfig()
        if configure_logs:
            configure_logging(self.config.log_level, self.config.log_json)

        if registry is None:
            registry = ToolRegistry()
            if builtins:
                register_all_builtins(registry)
        self.registry = registry

        if isinstance(resolver, str):
            resolver = build_resolver(resolver, self.config, client)
        self.classifier = RiskClassifier()
        self.router = CommandRouter(self.registry, resolver, self.classifier, self.config)
        self.executor = SafetyExecutor(self.registry, self.classifier, self.config)
        self.audit_log = audit_log or AuditLog()

        self._active = asyncio.Lock()
        self._cancel = asyncio.Event()

    @property
    def busy(self) -> bool:
        return self._active.locked()

    async def route(self, utterance: str) -> Command:
        """Route an utterance. Raises UnresolvedIntentError on no match."""
        command = await self.router.route(utterance, self.registry)
        record_command(intent=command.intent)
        return command

    async def plan_dry_run(self, command: Command) -> ExecutionPlan:
        return await self.executor.plan_dry_run(command)

    async def execute(self, command: Command, confirm: ConfirmCallback | None = None) -> ExecutionResult:
        """Execute a routed command; waits while another command is active."""
        async with self._active:
            self._cancel.clear()
            decision = {"confirmed": False}

            async def gate(request: ConfirmationRequest) -> bool:
                answer = confirm(request)
                if inspect.isawaitable(answer):
                    answer = await answer
                decision["confirmed"] = answer is True
                return answer

            result = await self.executor.execute(command, gate if confirm else None, self._cancel)
            self._record(command, decision["confirmed"], result)
            return result

    async def handle(self, utterance: str, confirm: ConfirmCallback | None = None) -> ExecutionResult:
        """Route then execute in one step."""
        command = await self.route(utterance)
        return await self.execute(command, confirm)

    def cancel(self) -> None:
        """Ask the active command to stop before its next tool."""
        if self.busy:
            logger.info("Cancellation requested", extra={"event_type": "CANCEL"})
        self._cancel.set()

    def _record(self, command: Command, confirmed: bool, result: ExecutionResult) -> None:
        self.audit_log.append(
            AuditEntry(utterance=command.utterance, command=command, confirmed=confirmed, result=result)
        )
        if self.config.audit_export_path:
            self.audit_log.export_json(self.config.audit_export_path)

    async def aclose(self) -> None:
        await self.registry.aclose()

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
