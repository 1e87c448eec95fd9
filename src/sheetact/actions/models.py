from __future__ import annotations

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
)
from pydantic.alias_generators import to_camel

from .types import ActionState, FormulaPath


class ActionDescriptor(BaseModel):
    """One structured instruction produced by the planner."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    kind: str = Field(alias="type", description="Action kind tag.")
    target: str | None = Field(default=None, description="Range or symbolic name.")
    source: str | None = Field(default=None, description="Secondary locator.")
    data: Any = Field(default=None, description="Kind-specific payload.")
    chart_type: str | None = Field(default=None, alias="chartType")
    title: str | None = None
    position: str | None = None

    @field_validator("kind")
    @classmethod
    def _validate_kind(cls, value: str) -> str:
        candidate = value.strip()
        if not candidate:
            raise ValueError("Action kind must not be empty.")
        return candidate

    @field_validator("target", "source", mode="before")
    @classmethod
    def _normalize_locator(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value


class ActionPayload(BaseModel):
    """Base for decoded ``data`` payloads.

    Payloads accept the planner's camelCase keys and ignore unknown keys.
    The raw ``data`` value (text, list or scalar) is kept for kinds that
    consume it directly.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    _raw: Any = PrivateAttr(default=None)
    _text: str | None = PrivateAttr(default=None)
    _skipped: list[str] = PrivateAttr(default_factory=list)

    @property
    def skipped(self) -> list[str]:
        """Notes for optional keys dropped because they failed validation."""
        return self._skipped

    @property
    def raw(self) -> Any:
        """Parsed ``data`` when it was not a JSON object, else the object."""
        return self._raw

    @property
    def data_text(self) -> str | None:
        """Original ``data`` text when the descriptor carried a string."""
        return self._text


class RawPayload(ActionPayload):
    """Payload of kinds that consume ``data`` verbatim."""


class ActionOutcome(BaseModel):
    """Final state of one executed action."""

    kind: str
    target: str | None = None
    state: ActionState = "received"
    message: str | None = None
    path: FormulaPath | None = Field(
        default=None, description="Formula broadcast path when one was taken."
    )
    warnings: list[str] = Field(default_factory=list)
    result: Any = Field(default=None, description="Kind-specific return value.")

    @property
    def ok(self) -> bool:
        return self.state == "reported"


class AppliedFormula(BaseModel):
    """Result of broadcasting a formula over a range."""

    path: FormulaPath
    rows: int
    columns: int
    fallback_reason: str | None = None


__all__ = [
    "ActionDescriptor",
    "ActionOutcome",
    "ActionPayload",
    "AppliedFormula",
    "RawPayload",
]
