"""
aios Safety Executor

Runs a routed Command through an explicit state machine:

  PLANNED -> DRY_RUN -> [CONFIRM_PENDING] -> EXECUTING -> SUCCEEDED | FAILED
                                 |
                                 +-> CANCELLED (declined)

- PLANNED: every tool reference is revalidated against the live registry
  and risk is re-derived; the confirmation flag can only be tightened.
- DRY_RUN: always computed. Dry-run capable tools are invoked in dry-run
  mode; the others produce an "unverified" step. An invalid plan ends
  the command before anyone is asked to confirm it.
- CONFIRM_PENDING: the confirm callback is called exactly once with the
  full plan. Nothing mutates before it returns True.
- EXECUTING: tools run sequentially in command order, each bounded by
  its timeout. The first failure stops the run; later tools are
  recorded as skipped. Cancellation is honored between tools only.

Side effects happen in EXECUTING and nowhere else. Every execution-time
error ends up in ExecutionResult.error; execute() does not raise for them.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import time
from collections.abc import Awaitable, Callable
from typing import Any

from aios.config import AssistantConfig
from aios.core.models import (
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
from aios.engine.risk_classifier import RiskClassifier
from aios.exceptions import (
    AiosError,
    CommandCancelledError,
    ConfirmationDeclinedError,
    InvalidParameterError,
    StaleToolReferenceError,
    ToolExecutionError,
    ToolTimeoutError,
)
from aios.logging import get_logger
from aios.observability.metrics import measure_tool_call, record_confirmation, record_result
from aios.observability.tracing import command_span
from aios.tools.models import ToolDescriptor, ToolResponse
from aios.tools.registry import ToolRegistry

logger = get_logger("aios.engine.executor")

ConfirmCallback = Callable[[ConfirmationRequest], bool | Awaitable[bool]]


class _Interrupted(Exception):
    """A safe-interrupt tool was stopped by session cancellation."""


class SafetyExecutor:
    """Dry-run-first, confirmation-gated executor for Commands."""

    def __init__(
        self,
        registry: ToolRegistry,
        classifier: RiskClassifier | None = None,
        config: AssistantConfig | None = None,
    ):
        self._registry = registry
        self._classifier = classifier or RiskClassifier()
        self._config = config or AssistantConfig()

    # ─── Dry run ───────────────────────────────────────────

    async def plan_dry_run(self, command: Command) -> ExecutionPlan:
        """Project what executing `command` would do, one step per tool.

        Raises StaleToolReferenceError if a referenced tool is gone.
        """
        missing = self._registry.missing(command.tools)
        if missing:
            raise StaleToolReferenceError(missing)
        steps = [await self._plan_step(command, name) for name in command.tools]
        return ExecutionPlan(command_id=command.id, steps=steps)

    async def _plan_step(self, command: Command, name: str) -> PlanStep:
        descriptor = self._descriptor(name)
        params = command.params_for(name)

        absent = self._registry.missing_required(name, self._registry.apply_defaults(name, params))
        if absent:
            error = InvalidParameterError(name, [f"missing required parameter '{p}'" for p in absent])
            return PlanStep(
                tool=name,
                rendered_action=f"Cannot plan {name}: missing {', '.join(absent)}",
                status=StepStatus.INVALID,
                error=error.to_error_info(),
            )

        try:
            arguments = self._registry.validate(name, params)
        except InvalidParameterError as e:
            return PlanStep(
                tool=name,
                rendered_action=f"Cannot plan {name}: {e.message}",
                status=StepStatus.INVALID,
                error=e.to_error_info(),
            )

        if not descriptor.dry_run_capable:
            return PlanStep(
                tool=name,
                rendered_action=f"Would run {name} with {_render_args(arguments)} (no dry run available)",
                status=StepStatus.UNVERIFIED,
                details={"arguments": arguments},
            )

        timeout = self._config.dry_run_timeout_seconds
        error: AiosError | None = None
        response: ToolResponse | None = None
        with measure_tool_call(name, ExecutionMode.DRY_RUN.value) as outcome:
            try:
                response = await asyncio.wait_for(
                    self._registry.invoke(name, arguments, ExecutionMode.DRY_RUN), timeout
                )
            except TimeoutError:
                error = ToolTimeoutError(name, timeout)
            except StaleToolReferenceError:
                raise
            except AiosError as e:
                error = e
            except Exception as e:
                logger.warning(
                    "Dry run raised %s",
                    type(e).__name__,
                    exc_info=True,
                    extra={"command_id": command.id, "tool_name": name, "mode": "dry_run"},
                )
                error = ToolExecutionError(name, f"{type(e).__name__}: {e}")
            else:
                if response.is_error:
                    error = ToolExecutionError(name, response.text or "dry run reported an error")
                outcome["success"] = error is None

        if error is not None:
            logger.warning(
                "Dry run failed: %s",
                error.message,
                extra={"command_id": command.id, "tool_name": name, "mode": "dry_run"},
            )
            return PlanStep(
                tool=name,
                rendered_action=(response.text if response else "") or f"Cannot plan {name}",
                status=StepStatus.INVALID,
                error=error.to_error_info(),
            )

        structured = response.structured
        return PlanStep(
            tool=name,
            rendered_action=response.text or f"{name}: {_render_args(arguments)}",
            estimated_effect=str(structured.get("estimated_effect", "")),
            status=StepStatus.VERIFIED,
            details=structured,
        )

    # ─── Execution ─────────────────────────────────────────

    async def execute(
        self,
        command: Command,
        confirm: ConfirmCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ExecutionResult:
        """Run `command` to a terminal state and return its result.

        Args:
            command: A Command produced by the router.
            confirm: Called once with a ConfirmationRequest when the command
                needs confirmation; returns (or resolves to) True to proceed.
                A missing callback counts as a decline.
            cancel_event: Session cancellation signal, checked between tools.
        """
        with command_span(command) as span:
            result = await self._run(command, confirm, cancel_event)
            span.set_attribute("aios.state", result.state.value)
            span.set_attribute("aios.success", result.success)

        record_result(success=result.success)
        logger.info(
            "Command finished: %s",
            result.state.value,
            extra={"command_id": command.id, "intent": command.intent, "state": result.state.value},
        )
        return result

    async def _run(
        self,
        command: Command,
        confirm: ConfirmCallback | None,
        cancel_event: asyncio.Event | None,
    ) -> ExecutionResult:
        # PLANNED
        self._transition(command, CommandState.PLANNED)
        missing = self._registry.missing(command.tools)
        if missing:
            return self._not_run(command, CommandState.FAILED, StaleToolReferenceError(missing).to_error_info())

        risk, needs_confirmation = self._classifier.assess(command, self._registry)
        needs_confirmation = needs_confirmation or command.confirmation_required
        if risk != command.risk_level:
            logger.warning(
                "Risk changed since routing: %s -> %s",
                command.risk_level.value,
                risk.value,
                extra={"command_id": command.id, "risk_level": risk.value},
            )
        # never downgrade
        risk = RiskClassifier.max_level([risk, command.risk_level])

        # DRY_RUN
        self._transition(command, CommandState.DRY_RUN)
        try:
            plan = await self.plan_dry_run(command)
        except StaleToolReferenceError as e:
            return self._not_run(command, CommandState.FAILED, e.to_error_info())
        if not plan.is_valid:
            return self._not_run(command, CommandState.FAILED, plan.first_error, plan)

        # CONFIRM_PENDING
        if needs_confirmation:
            self._transition(command, CommandState.CONFIRM_PENDING)
            accepted = await self._confirm(command, risk, plan, confirm)
            record_confirmation(accepted=accepted)
            if not accepted:
                self._transition(command, CommandState.CANCELLED)
                return self._not_run(
                    command,
                    CommandState.CANCELLED,
                    ConfirmationDeclinedError(command.id).to_error_info(),
                    plan,
                    output="Cancelled by operator; nothing was changed",
                )

        # EXECUTING
        self._transition(command, CommandState.EXECUTING)
        try:
            async with self._registry.reserve(command.tools):
                records = await self._run_tools(command, cancel_event)
        except StaleToolReferenceError as e:
            return self._not_run(command, CommandState.FAILED, e.to_error_info(), plan)

        return self._finish(command, records, plan)

    async def _run_tools(self, command: Command, cancel_event: asyncio.Event | None) -> list[ToolRunRecord]:
        records: list[ToolRunRecord] = []
        stop: ToolOutcomeStatus | None = None
        for name in command.tools:
            if stop is None and cancel_event is not None and cancel_event.is_set():
                stop = ToolOutcomeStatus.SKIPPED_CANCELLED
            if stop is not None:
                records.append(ToolRunRecord(tool=name, outcome=stop))
                continue

            record = await self._run_tool(command, name, cancel_event)
            records.append(record)
            if record.error is not None and record.error.kind == ErrorKind.CANCELLED:
                stop = ToolOutcomeStatus.SKIPPED_CANCELLED
            elif record.outcome != ToolOutcomeStatus.SUCCEEDED:
                stop = ToolOutcomeStatus.SKIPPED_PRIOR_FAILURE
        return records

    async def _run_tool(self, command: Command, name: str, cancel_event: asyncio.Event | None) -> ToolRunRecord:
        descriptor = self._descriptor(name)
        timeout = descriptor.timeout_seconds or self._config.tool_timeout_seconds
        log_extra = {"command_id": command.id, "tool_name": name, "mode": "execute"}
        start = time.monotonic()

        def elapsed() -> float:
            return round((time.monotonic() - start) * 1000, 2)

        with measure_tool_call(name, ExecutionMode.EXECUTE.value) as outcome:
            try:
                response = await self._call(descriptor, command.params_for(name), timeout, cancel_event)
            except TimeoutError:
                error = ToolTimeoutError(name, timeout)
                logger.warning(error.message, extra=log_extra)
                return ToolRunRecord(
                    tool=name,
                    outcome=ToolOutcomeStatus.TIMED_OUT,
                    duration_ms=elapsed(),
                    error=error.to_error_info(),
                )
            except _Interrupted:
                error = CommandCancelledError(command.id, details={"tool_name": name})
                logger.warning("Tool interrupted by cancellation", extra=log_extra)
                return ToolRunRecord(
                    tool=name,
                    outcome=ToolOutcomeStatus.FAILED,
                    duration_ms=elapsed(),
                    error=error.to_error_info(),
                )
            except AiosError as e:
                logger.warning("Tool failed: %s", e.message, extra=log_extra)
                return ToolRunRecord(
                    tool=name,
                    outcome=ToolOutcomeStatus.FAILED,
                    duration_ms=elapsed(),
                    error=e.to_error_info(),
                )
            except Exception as e:
                error = ToolExecutionError(name, f"{type(e).__name__}: {e}")
                logger.warning("Tool raised %s", type(e).__name__, exc_info=True, extra=log_extra)
                return ToolRunRecord(
                    tool=name,
                    outcome=ToolOutcomeStatus.FAILED,
                    duration_ms=elapsed(),
                    error=error.to_error_info(),
                )

            if response.is_error:
                error = ToolExecutionError(name, response.text or "backend reported an error")
                logger.warning(error.message, extra=log_extra)
                return ToolRunRecord(
                    tool=name,
                    outcome=ToolOutcomeStatus.FAILED,
                    output=response.text,
                    duration_ms=elapsed(),
                    error=error.to_error_info(),
                )

            outcome["success"] = True
            logger.info("Tool succeeded", extra={**log_extra, "duration_ms": elapsed()})
            return ToolRunRecord(
                tool=name,
                outcome=ToolOutcomeStatus.SUCCEEDED,
                output=response.text,
                duration_ms=elapsed(),
            )

    async def _call(
        self,
        descriptor: ToolDescriptor,
        params: dict[str, Any],
        timeout: float,
        cancel_event: asyncio.Event | None,
    ) -> ToolResponse:
        call = self._registry.invoke(descriptor.name, params, ExecutionMode.EXECUTE)
        if not descriptor.safe_interrupt or cancel_event is None:
            return await asyncio.wait_for(call, timeout)

        # only tools that declare a safe interrupt may be stopped mid-flight
        task = asyncio.ensure_future(call)
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
        if task in done:
            return task.result()
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        if waiter in done:
            raise _Interrupted(descriptor.name)
        raise TimeoutError

    # ─── Confirmation ──────────────────────────────────────

    async def _confirm(
        self,
        command: Command,
        risk: RiskLevel,
        plan: ExecutionPlan,
        confirm: ConfirmCallback | None,
    ) -> bool:
        if confirm is None:
            logger.warning(
                "Confirmation required but no callback supplied; treating as declined",
                extra={"command_id": command.id},
            )
            return False

        request = ConfirmationRequest(
            command_id=command.id,
            description=command.description,
            tools=list(command.tools),
            risk_level=risk,
            plan=plan,
        )
        timeout = self._config.confirmation_timeout_seconds
        try:
            decision = confirm(request)
            if inspect.isawaitable(decision):
                decision = await (asyncio.wait_for(decision, timeout) if timeout else decision)
        except TimeoutError:
            logger.warning("Confirmation timed out; treating as declined", extra={"command_id": command.id})
            return False
        except Exception:
            logger.error(
                "Confirmation callback failed; treating as declined",
                exc_info=True,
                extra={"command_id": command.id},
            )
            return False
        return decision is True

    # ─── Results ───────────────────────────────────────────

    def _finish(self, command: Command, records: list[ToolRunRecord], plan: ExecutionPlan) -> ExecutionResult:
        completed = [r.tool for r in records if r.outcome == ToolOutcomeStatus.SUCCEEDED]
        failed = next((r for r in records if r.error is not None), None)
        cancelled = any(r.outcome == ToolOutcomeStatus.SKIPPED_CANCELLED for r in records) or (
            failed is not None and failed.error.kind == ErrorKind.CANCELLED
        )
        output = _join_output(records)

        if cancelled:
            state = CommandState.CANCELLED
            error = CommandCancelledError(command.id, completed).to_error_info()
        elif failed is not None:
            state = CommandState.FAILED
            done = ", ".join(completed) if completed else "none"
            error = failed.error.model_copy(
                update={"message": f"{failed.error.message} (completed tools: {done})"}
            )
        else:
            state = CommandState.SUCCEEDED
            error = None

        self._transition(command, state)
        return ExecutionResult(
            command_id=command.id,
            success=state == CommandState.SUCCEEDED,
            cancelled=cancelled,
            state=state,
            output=output,
            error=error,
            per_tool_results=records,
            plan=plan,
        )

    def _not_run(
        self,
        command: Command,
        state: CommandState,
        error: ErrorInfo | None,
        plan: ExecutionPlan | None = None,
        output: str = "",
    ) -> ExecutionResult:
        if state == CommandState.FAILED:
            self._transition(command, state)
        return ExecutionResult(
            command_id=command.id,
            success=False,
            cancelled=state == CommandState.CANCELLED,
            state=state,
            output=output or (error.message if error else ""),
            error=error,
            per_tool_results=[ToolRunRecord(tool=t, outcome=ToolOutcomeStatus.NOT_RUN) for t in command.tools],
            plan=plan,
        )

    def _descriptor(self, name: str) -> ToolDescriptor:
        descriptor = self._registry.lookup(name)
        if descriptor is None:
            raise StaleToolReferenceError([name])
        return descriptor

    def _transition(self, command: Command, state: CommandState) -> None:
        logger.debug(
            "Command %s -> %s",
            command.id,
            state.value,
            extra={"command_id": command.id, "state": state.value, "event_type": "STATE_TRANSITION"},
        )


def _render_args(arguments: dict[str, Any]) -> str:
    return ", ".join(f"{k}={v}" for k, v in arguments.items()) or "no arguments"


def _join_output(records: list[ToolRunRecord]) -> str:
    outputs = [r for r in records if r.output]
    if len(outputs) == 1:
        return outputs[0].output
    return "\n\n".join(f"[{r.tool}]\n{r.output}" for r in outputs)
