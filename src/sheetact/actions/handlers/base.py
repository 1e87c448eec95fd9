"""Handler protocol, registry and the per-invocation handler context."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
import logging
from typing import Any, Literal, Protocol, TypeVar

from sheetact.errors import ActionValidationError
from sheetact.host import RangeProxy, RequestContext, WorksheetProxy

from ..capabilities import HostCapabilities
from ..diagnostics import DiagnosticSink
from ..locator import Located, locate, resolve_range
from ..models import ActionDescriptor, ActionPayload, RawPayload
from ..normalize import decode_payload
from ..specs import get_action_spec, target_mode_for
from ..types import FormulaPath, Namespace, TargetMode

logger = logging.getLogger(__name__)

TPayload = TypeVar("TPayload", bound=ActionPayload)
TargetResolution = Literal["auto", "manual"]
ApplyFunc = Callable[["HandlerContext", Any], Awaitable[Any]]


class HandlerContext:
    """Everything a handler needs for one invocation.

    ``range`` is set for range-mode kinds once the target is resolved (its
    ``row_count``/``column_count``/``row_index``/``column_index``/``address``
    are loaded). Symbolic kinds leave it ``None`` and resolve names through
    :meth:`locate`.
    """

    def __init__(
        self,
        ctx: RequestContext,
        worksheet: WorksheetProxy,
        descriptor: ActionDescriptor,
        payload: ActionPayload,
        capabilities: HostCapabilities,
        sink: DiagnosticSink,
    ) -> None:
        self.ctx = ctx
        self.worksheet = worksheet
        self.descriptor = descriptor
        self.payload = payload
        self.capabilities = capabilities
        self.sink = sink
        self.range: RangeProxy | None = None
        self.path: FormulaPath | None = None
        self.warnings: list[str] = []

    @property
    def kind(self) -> str:
        return self.descriptor.kind

    @property
    def target(self) -> str | None:
        return self.descriptor.target

    @property
    def source(self) -> str | None:
        return self.descriptor.source

    def info(self, message: str) -> None:
        self.sink.info(message)

    def warn(self, message: str) -> None:
        """Record a soft failure on the outcome and the diagnostic trace."""
        self.warnings.append(message)
        self.sink.warning(message)

    def require_target(self) -> str:
        if not self.target:
            raise ActionValidationError("No target specified", kind=self.kind)
        return self.target

    def require_range(self) -> RangeProxy:
        if self.range is None:
            raise ActionValidationError(
                f"{self.kind} requires a range target", kind=self.kind, target=self.target
            )
        return self.range

    async def resolve(self, address: str) -> RangeProxy:
        """Resolve a secondary address (``source``, destinations...)."""
        return await resolve_range(self.ctx, self.worksheet, address)

    async def load_range(self, address: str, props: str = "values") -> RangeProxy:
        """Resolve ``address`` and load ``props`` in one barrier."""
        target = await self.resolve(address)
        target.load(props)
        await self.ctx.sync()
        return target

    async def locate(
        self, name: str | None = None, namespace: Namespace | None = None
    ) -> Located:
        """Find a named object; defaults to the target in the kind's namespace."""
        spec = get_action_spec(self.kind)
        resolved_namespace = namespace or (spec.namespace if spec else None)
        if resolved_namespace is None:
            raise ActionValidationError(
                f"{self.kind} has no object namespace", kind=self.kind
            )
        return await locate(self.ctx, resolved_namespace, name or self.require_target())


class ActionHandler(Protocol):
    """Handler registered for one action kind."""

    kind: str

    def validate(self, descriptor: ActionDescriptor) -> ActionPayload:
        """Decode and check the payload; raise ``ActionValidationError``."""

    async def resolve_target(self, context: HandlerContext) -> None:
        """Prepare ``context`` for :meth:`apply` (range resolution, etc.)."""

    async def apply(self, context: HandlerContext) -> Any:
        """Issue the host mutations; return an optional kind-specific result."""


class FunctionHandler:
    """Handler built from an async function and a payload model."""

    def __init__(
        self,
        kind: str,
        func: ApplyFunc,
        payload_model: type[ActionPayload] = RawPayload,
        *,
        required: Iterable[str] = (),
        target: TargetResolution = "auto",
    ) -> None:
        self.kind = kind
        self.func = func
        self.payload_model = payload_model
        self.required = tuple(required)
        self.target = target

    def __repr__(self) -> str:
        return f"FunctionHandler({self.kind!r}, {self.func.__name__})"

    @property
    def mode(self) -> TargetMode:
        return target_mode_for(self.kind)

    def validate(self, descriptor: ActionDescriptor) -> ActionPayload:
        payload = decode_payload(
            self.payload_model, descriptor, required=self.required
        )
        for field in self.required:
            value = getattr(payload, field, None)
            if value is None or (isinstance(value, (str, list, dict)) and not value):
                alias = self.payload_model.model_fields[field].alias or field
                raise ActionValidationError(
                    f"{self.kind} requires '{alias}'",
                    kind=descriptor.kind,
                    target=descriptor.target,
                )
        return payload

    async def resolve_target(self, context: HandlerContext) -> None:
        if self.target == "manual" or self.mode != "range" or not context.target:
            return
        address = context.target
        if "," in address:
            first = address.split(",", 1)[0].strip()
            context.warn(
                f"Non-contiguous target {address}; using first area {first}"
            )
            address = first
        target = await resolve_range(context.ctx, context.worksheet, address)
        target.load("address, row_index, column_index, row_count, column_count")
        await context.ctx.sync()
        context.range = target

    async def apply(self, context: HandlerContext) -> Any:
        return await self.func(context, context.payload)


class HandlerRegistry:
    """Kind -> handler map."""

    def __init__(self) -> None:
        self._handlers: dict[str, ActionHandler] = {}

    def register(self, handler: ActionHandler) -> ActionHandler:
        if handler.kind in self._handlers:
            logger.debug("Replacing handler for %s", handler.kind)
        self._handlers[handler.kind] = handler
        return handler

    def get(self, kind: str) -> ActionHandler | None:
        return self._handlers.get(kind)

    def kinds(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, kind: object) -> bool:
        return kind in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def copy(self) -> HandlerRegistry:
        clone = HandlerRegistry()
        clone._handlers = dict(self._handlers)
        return clone


DEFAULT_REGISTRY = HandlerRegistry()


def handler(
    *kinds: str,
    payload: type[ActionPayload] = RawPayload,
    required: Iterable[str] = (),
    target: TargetResolution = "auto",
    registry: HandlerRegistry | None = None,
) -> Callable[[ApplyFunc], ApplyFunc]:
    """Register the decorated coroutine for each of ``kinds``."""
    required_fields = tuple(required)

    def decorator(func: ApplyFunc) -> ApplyFunc:
        for kind in kinds:
            (registry or DEFAULT_REGISTRY).register(
                FunctionHandler(
                    kind, func, payload, required=required_fields, target=target
                )
            )
        return func

    return decorator


__all__ = [
    "DEFAULT_REGISTRY",
    "ActionHandler",
    "FunctionHandler",
    "HandlerContext",
    "HandlerRegistry",
    "handler",
]
