"""Action descriptors, the dispatcher and its handlers."""

from __future__ import annotations

from .capabilities import HostCapabilities, detect_capabilities
from .diagnostics import DiagnosticEntry, DiagnosticSink
from .executor import ActionExecutor, ExecutorOptions, execute
from .handlers import DEFAULT_REGISTRY, HandlerContext, HandlerRegistry, handler
from .models import ActionDescriptor, ActionOutcome, ActionPayload
from .normalize import coerce_descriptor
from .specs import ACTION_SPECS, ActionSpec, get_action_spec, target_mode_for

__all__ = [
    "ACTION_SPECS",
    "DEFAULT_REGISTRY",
    "ActionDescriptor",
    "ActionExecutor",
    "ActionOutcome",
    "ActionPayload",
    "ActionSpec",
    "DiagnosticEntry",
    "DiagnosticSink",
    "ExecutorOptions",
    "HandlerContext",
    "HandlerRegistry",
    "HostCapabilities",
    "coerce_descriptor",
    "detect_capabilities",
    "execute",
    "get_action_spec",
    "handler",
    "target_mode_for",
]
