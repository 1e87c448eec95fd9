"""Action dispatcher.

``ActionExecutor.execute`` takes one descriptor through
received -> validated -> resolved -> applied -> reported, or stops at
failed and raises. Each invocation emits exactly one outcome line on the
diagnostic sink.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

from pydantic import BaseModel, Field

from sheetact.errors import ActionError, ActionValidationError
from sheetact.host import (
    HostError,
    PropertyNotLoadedError,
    RequestContext,
    WorksheetProxy,
)

from .capabilities import HostCapabilities, detect_capabilities
from .diagnostics import DiagnosticCallback, DiagnosticSink
from .handlers import DEFAULT_REGISTRY, FunctionHandler, HandlerContext, HandlerRegistry
from .handlers.fallback import assign_raw_data
from .models import ActionDescriptor, ActionOutcome
from .normalize import coerce_descriptor
from .specs import target_mode_for

logger = logging.getLogger(__name__)

DescriptorInput = ActionDescriptor | Mapping[str, Any] | str


class ExecutorOptions(BaseModel):
    """Tunables of an executor instance."""

    max_diagnostic_entries: int = Field(
        default=100, ge=1, description="Trace lines kept for snapshots."
    )
    unknown_kind_fallback: bool = Field(
        default=True,
        description="Write data verbatim into the target for unknown kinds.",
    )


class ActionExecutor:
    """Executes action descriptors against a host request context."""

    def __init__(
        self,
        diagnostic_logger: DiagnosticCallback | None = None,
        capabilities: HostCapabilities | None = None,
        registry: HandlerRegistry | None = None,
        options: ExecutorOptions | None = None,
    ) -> None:
        self.options = options or ExecutorOptions()
        self.sink = DiagnosticSink(
            diagnostic_logger, max_entries=self.options.max_diagnostic_entries
        )
        self.registry = registry or DEFAULT_REGISTRY
        self._capabilities = capabilities

    def set_diagnostic_logger(self, callback: DiagnosticCallback | None) -> None:
        """Register or replace the callback receiving trace lines."""
        self.sink.set_callback(callback)

    def capabilities_for(self, ctx: RequestContext) -> HostCapabilities:
        """Detect host capabilities once, on first use."""
        if self._capabilities is None:
            self._capabilities = detect_capabilities(ctx)
        return self._capabilities

    async def execute(
        self,
        ctx: RequestContext,
        worksheet: WorksheetProxy,
        descriptor: DescriptorInput,
    ) -> ActionOutcome:
        """Execute one descriptor.

        Returns:
            Outcome in state ``reported``.

        Raises:
            ActionError: If the action failed; host rejections are wrapped
                with the host message preserved.
        """
        try:
            parsed = coerce_descriptor(descriptor)
        except ActionError as exc:
            self.sink.error(f"Failed unknown on none: {exc}")
            raise

        outcome = ActionOutcome(kind=parsed.kind, target=parsed.target)
        try:
            result = await self._run(ctx, worksheet, parsed, outcome)
        except ActionError as exc:
            self._fail(outcome, exc.bind(parsed.kind, parsed.target))
            raise
        except HostError as exc:
            wrapped = ActionError(
                str(exc), kind=parsed.kind, target=parsed.target, host_message=str(exc)
            )
            self._fail(outcome, wrapped)
            raise wrapped from exc
        except PropertyNotLoadedError as exc:
            wrapped = ActionError(
                f"Host value read before sync: {exc}",
                kind=parsed.kind,
                target=parsed.target,
            )
            self._fail(outcome, wrapped)
            raise wrapped from exc
        except ValueError as exc:
            wrapped = ActionValidationError(
                str(exc), kind=parsed.kind, target=parsed.target
            )
            self._fail(outcome, wrapped)
            raise wrapped from exc
        except Exception as exc:
            self._fail(outcome, exc)
            raise

        outcome.result = result
        outcome.state = "reported"
        outcome.message = f"Completed {parsed.kind} on {_label(parsed.target)}"
        self.sink.info(outcome.message)
        return outcome

    async def _run(
        self,
        ctx: RequestContext,
        worksheet: WorksheetProxy,
        descriptor: ActionDescriptor,
        outcome: ActionOutcome,
    ) -> Any:
        handler = self.registry.get(descriptor.kind)
        if handler is None:
            if not self.options.unknown_kind_fallback:
                raise ActionValidationError(f"Unknown action kind: {descriptor.kind}")
            self.sink.warning(
                f"Unknown action kind {descriptor.kind}; assigning data verbatim"
            )
            handler = FunctionHandler(descriptor.kind, assign_raw_data)

        mode = target_mode_for(descriptor.kind)
        if mode != "none" and not descriptor.target:
            raise ActionValidationError("No target specified")
        payload = handler.validate(descriptor)
        outcome.state = "validated"

        context = HandlerContext(
            ctx,
            worksheet,
            descriptor,
            payload,
            self.capabilities_for(ctx),
            self.sink,
        )
        for note in payload.skipped:
            context.warn(note)
        await handler.resolve_target(context)
        outcome.state = "resolved"

        result = await handler.apply(context)
        outcome.state = "applied"
        outcome.path = context.path
        outcome.warnings = list(context.warnings)
        return result

    def _fail(self, outcome: ActionOutcome, exc: BaseException) -> None:
        outcome.state = "failed"
        outcome.message = (
            f"Failed {outcome.kind} on {_label(outcome.target)}: {exc}"
        )
        self.sink.error(outcome.message)


def _label(target: str | None) -> str:
    return target if target else "none"


async def execute(
    ctx: RequestContext,
    worksheet: WorksheetProxy,
    descriptor: DescriptorInput,
    *,
    diagnostic_logger: DiagnosticCallback | None = None,
) -> ActionOutcome:
    """Execute one descriptor with a throwaway executor."""
    executor = ActionExecutor(diagnostic_logger=diagnostic_logger)
    return await executor.execute(ctx, worksheet, descriptor)


__all__ = ["ActionExecutor", "DescriptorInput", "ExecutorOptions", "execute"]
