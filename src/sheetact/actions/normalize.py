from __future__ import annotations

from collections.abc import Iterable, Mapping
import json
import logging
from typing import Any, TypeVar, cast

from pydantic import ValidationError

from sheetact.errors import ActionValidationError

from .models import ActionDescriptor, ActionPayload

logger = logging.getLogger(__name__)

TPayload = TypeVar("TPayload", bound=ActionPayload)

# Descriptor-level chart attributes, merged into payloads that lack them.
_DESCRIPTOR_EXTRAS = (
    ("chart_type", "chartType"),
    ("title", "title"),
    ("position", "position"),
)


def coerce_descriptor(
    raw: ActionDescriptor | Mapping[str, Any] | str,
) -> ActionDescriptor:
    """Normalize a descriptor given as a model, mapping or JSON object text."""
    if isinstance(raw, ActionDescriptor):
        return raw
    if isinstance(raw, str):
        raw = parse_descriptor_json(raw)
    if not isinstance(raw, Mapping):
        raise ActionValidationError(
            build_descriptor_error_message("descriptor must be an object")
        )
    try:
        return ActionDescriptor.model_validate(dict(raw))
    except ValidationError as exc:
        raise ActionValidationError(
            build_descriptor_error_message(_first_error(exc)),
            kind=str(raw.get("type") or raw.get("kind") or ""),
        ) from exc


def parse_descriptor_json(text: str) -> dict[str, Any]:
    """Parse a JSON string descriptor into object form."""
    candidate = text.strip()
    if not candidate:
        raise ActionValidationError(build_descriptor_error_message("empty string"))
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise ActionValidationError(
            build_descriptor_error_message("invalid JSON")
        ) from exc
    if not isinstance(parsed, dict):
        raise ActionValidationError(
            build_descriptor_error_message("JSON value must be an object")
        )
    return cast(dict[str, Any], parsed)


def parse_data(data: object) -> object:
    """Parse JSON text payloads; text that is not JSON is returned unchanged."""
    if not isinstance(data, str):
        return data
    candidate = data.strip()
    if not candidate:
        return None
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return data


def decode_payload(
    model: type[TPayload],
    descriptor: ActionDescriptor,
    *,
    required: Iterable[str] = (),
) -> TPayload:
    """Decode ``descriptor.data`` once into the payload model of its kind.

    JSON objects are validated against ``model``; anything else (plain text,
    arrays, scalars, malformed JSON) produces a default payload whose ``raw``
    and ``data_text`` carry the original data.

    A key that fails validation is dropped and noted in ``payload.skipped``
    unless it is mandatory (no default, or listed in ``required``), in which
    case the whole payload is rejected.
    """
    parsed = parse_data(descriptor.data)
    fields: dict[str, Any] = {}
    for attr, key in _DESCRIPTOR_EXTRAS:
        value = getattr(descriptor, attr)
        if value is not None:
            fields[key] = value
    if isinstance(parsed, Mapping):
        fields.update(parsed)
    elif parsed is not None and not isinstance(parsed, (list, str)):
        logger.debug("Non-object payload for %s: %r", descriptor.kind, parsed)
    mandatory = set(required)
    skipped: list[str] = []
    while True:
        try:
            payload = model.model_validate(fields)
            break
        except ValidationError as exc:
            dropped = _optional_failures(model, fields, exc, mandatory)
            if not dropped:
                raise ActionValidationError(
                    f"Invalid data for {descriptor.kind}: {_first_error(exc)}",
                    kind=descriptor.kind,
                    target=descriptor.target,
                ) from exc
            for key, reason in dropped.items():
                logger.debug("Dropping %s from %s payload", key, descriptor.kind)
                skipped.append(f"Ignored invalid {key}: {reason}")
                del fields[key]
    payload._raw = parsed
    payload._text = descriptor.data if isinstance(descriptor.data, str) else None
    payload._skipped = skipped
    return payload


def build_descriptor_error_message(reason: str) -> str:
    """Build a consistent validation message for malformed descriptors."""
    example = '{"type":"values","target":"A1:B2","data":"[[1,2],[3,4]]"}'
    return f"Invalid action descriptor: {reason}. Use object form like {example}."


def _optional_failures(
    model: type[ActionPayload],
    fields: Mapping[str, Any],
    exc: ValidationError,
    mandatory: set[str],
) -> dict[str, str]:
    """Map failing top-level keys to reasons; empty if any of them is mandatory."""
    failures: dict[str, str] = {}
    for error in exc.errors():
        location = error.get("loc", ())
        name = _field_name(model, location[0]) if location else None
        if name is None or name in mandatory or model.model_fields[name].is_required():
            return {}
        alias = model.model_fields[name].alias
        key = next((item for item in (alias, name) if item in fields), None)
        if key is None:
            return {}
        failures.setdefault(key, str(error.get("msg", "invalid value")))
    return failures


def _field_name(model: type[ActionPayload], key: object) -> str | None:
    for name, info in model.model_fields.items():
        if key in (name, info.alias):
            return name
    return None


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}" if location else message


__all__ = [
    "build_descriptor_error_message",
    "coerce_descriptor",
    "decode_payload",
    "parse_data",
    "parse_descriptor_json",
]
