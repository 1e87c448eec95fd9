from __future__ import annotations

from pydantic import BaseModel


class ActionErrorDetail(BaseModel):
    """Structured error details for a failed action."""

    kind: str
    target: str | None
    message: str
    error_code: str | None = None
    hint: str | None = None
    host_message: str | None = None


class ActionError(ValueError):
    """Action failure carrying a human-readable message and structured detail."""

    error_code = "action_failed"

    def __init__(
        self,
        message: str,
        *,
        kind: str = "",
        target: str | None = None,
        hint: str | None = None,
        host_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.detail = ActionErrorDetail(
            kind=kind,
            target=target,
            message=message,
            error_code=self.error_code,
            hint=hint,
            host_message=host_message,
        )

    def bind(self, kind: str, target: str | None) -> ActionError:
        """Fill in kind/target once the dispatcher knows them."""
        if not self.detail.kind:
            self.detail.kind = kind
        if self.detail.target is None:
            self.detail.target = target
        return self


class ActionValidationError(ActionError):
    """Missing or malformed mandatory input."""

    error_code = "invalid_action"


class NotFoundError(ActionError):
    """A symbolic name or sheet does not exist in any searched namespace."""

    error_code = "not_found"

    def __init__(self, namespace: str, name: str, *, scope: str | None = None) -> None:
        label = _NAMESPACE_LABELS.get(namespace, namespace)
        where = f" {scope}" if scope else ""
        super().__init__(f'{label} "{name}" not found{where}.')
        self.namespace = namespace
        self.name = name


class UnsupportedActionError(ActionError):
    """The host cannot perform the requested feature and no fallback exists."""

    error_code = "unsupported"


_NAMESPACE_LABELS = {
    "table": "Table",
    "pivot_table": "PivotTable",
    "slicer": "Slicer",
    "shape": "Shape",
    "named_range": "Named range",
    "sheet": "Worksheet",
    "comment": "Comment",
    "sparkline": "Sparkline group",
}


__all__ = [
    "ActionError",
    "ActionErrorDetail",
    "ActionValidationError",
    "NotFoundError",
    "UnsupportedActionError",
]
