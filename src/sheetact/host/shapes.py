from __future__ import annotations

import base64
import binascii
import logging
from typing import TYPE_CHECKING, Any

from sheetact.shared.colors import normalize_hex_input

from .client import ClientObject, HostError, HostProperty
from .state import ShapeState

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .worksheet import WorksheetProxy

logger = logging.getLogger(__name__)

GEOMETRIC_SHAPE_TYPES = (
    "Rectangle",
    "RoundRectangle",
    "Ellipse",
    "Triangle",
    "RightTriangle",
    "Diamond",
    "Pentagon",
    "Hexagon",
    "Octagon",
    "Star5",
    "RightArrow",
    "LeftArrow",
    "UpArrow",
    "DownArrow",
    "Heart",
    "Cloud",
    "Plus",
    "Chevron",
)
LINE_DASH_STYLES = ("Solid", "Dash", "DashDot", "DashDotDot", "RoundDot", "SquareDot")
Z_ORDER_POSITIONS = ("BringToFront", "SendToBack", "BringForward", "SendBackward")
_ALIGNMENTS = ("Left", "Center", "Right", "Justify")


def decode_image(data: str) -> bytes:
    """Decode base64 image data, stripping a ``data:...;base64,`` prefix."""
    payload = data.strip()
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HostError(
            f"Image data is not valid base64: {exc}", code="InvalidArgument"
        ) from exc
    if not raw:
        raise HostError("Image data is empty.", code="InvalidArgument")
    return raw


class ShapeCollection(ClientObject):
    """Drawing objects of one worksheet, in z-order (back to front)."""

    names = HostProperty()
    count = HostProperty()

    def __init__(self, worksheet: WorksheetProxy) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet

    def _shapes(self) -> list[ShapeState]:
        return self.context.state.for_sheet(self.worksheet._sheet()).shapes

    def _read_names(self) -> list[str]:
        return [shape.name for shape in self._shapes()]

    def _read_count(self) -> int:
        return len(self._shapes())

    def get_item(self, name: str) -> ShapeProxy:
        return ShapeProxy(self.worksheet, name)

    def get_item_or_null_object(self, name: str) -> ShapeProxy:
        return ShapeProxy(self.worksheet, name)

    def _add(self, shape_type: str, label: str, **fields: Any) -> ShapeProxy:
        proxy = ShapeProxy(self.worksheet, "")

        def _create() -> None:
            if "shapes" not in self.context.capabilities:
                raise HostError(
                    "Shapes are not supported by this host.", code="ApiNotFound"
                )
            if shape_type == "Image":
                decode_image(fields["image_base64"])
            shapes = self._shapes()
            taken = {shape.name.casefold() for shape in shapes}
            index = self.context.state.next_id()
            while f"{label} {index}".casefold() in taken:
                index = self.context.state.next_id()
            shape = ShapeState(name=f"{label} {index}", shape_type=shape_type, **fields)
            shapes.append(shape)
            proxy._name = shape.name

        self._queue(_create)
        return proxy

    def add_geometric_shape(self, shape_type: str) -> ShapeProxy:
        if shape_type not in GEOMETRIC_SHAPE_TYPES:
            raise HostError(
                f"Unsupported shape type: {shape_type}", code="InvalidArgument"
            )
        return self._add(shape_type, shape_type)

    def add_image(self, data: str) -> ShapeProxy:
        """Queue an image shape from base64 data."""
        payload = data.strip()
        if payload.startswith("data:") and "," in payload:
            payload = payload.split(",", 1)[1]
        return self._add("Image", "Picture", image_base64=payload)

    def add_text_box(self, text: str) -> ShapeProxy:
        return self._add("TextBox", "TextBox", text=text)

    def add_group(self, names: list[str]) -> ShapeProxy:
        """Group existing top-level shapes under a new group shape."""
        proxy = ShapeProxy(self.worksheet, "")

        def _group() -> None:
            if len(names) < 2:
                raise HostError(
                    "A group needs at least two shapes.", code="InvalidArgument"
                )
            shapes = self._shapes()
            members: list[ShapeState] = []
            for name in names:
                shape = _find(shapes, name)
                if shape is None:
                    raise HostError(
                        f"The requested shape '{name}' doesn't exist.",
                        code="ItemNotFound",
                    )
                if shape.parent_group is not None:
                    raise HostError(
                        f"Shape '{shape.name}' already belongs to group "
                        f"'{shape.parent_group}'.",
                        code="InvalidOperation",
                    )
                members.append(shape)
            index = self.context.state.next_id()
            group = ShapeState(
                name=f"Group {index}",
                shape_type="Group",
                left=min(shape.left for shape in members),
                top=min(shape.top for shape in members),
                width=max(shape.left + shape.width for shape in members)
                - min(shape.left for shape in members),
                height=max(shape.top + shape.height for shape in members)
                - min(shape.top for shape in members),
                members=[shape.name for shape in members],
            )
            for shape in members:
                shape.parent_group = group.name
            shapes.append(group)
            proxy._name = group.name

        self._queue(_group)
        return proxy


class ShapeProxy(ClientObject):
    """One shape, addressed by name on its sheet."""

    name = HostProperty(writable=True)
    shape_type = HostProperty()
    left = HostProperty(writable=True)
    top = HostProperty(writable=True)
    width = HostProperty(writable=True)
    height = HostProperty(writable=True)
    rotation = HostProperty(writable=True)
    fill_color = HostProperty(writable=True)
    fill_transparency = HostProperty(writable=True)
    line_color = HostProperty(writable=True)
    line_weight = HostProperty(writable=True)
    line_dash_style = HostProperty(writable=True)
    text = HostProperty(writable=True)
    font_name = HostProperty(writable=True)
    font_size = HostProperty(writable=True)
    font_color = HostProperty(writable=True)
    horizontal_alignment = HostProperty(writable=True)
    alt_text = HostProperty(writable=True)
    parent_group = HostProperty()
    members = HostProperty()
    z_order_position = HostProperty()

    def __init__(self, worksheet: WorksheetProxy, name: str) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet
        self._name = name

    def _shapes(self) -> list[ShapeState]:
        return self.context.state.for_sheet(self.worksheet._sheet()).shapes

    def _resolve(self) -> ShapeState:
        shape = _find(self._shapes(), self._name)
        if shape is None:
            raise HostError(
                f"The requested shape '{self._name}' doesn't exist.",
                code="ItemNotFound",
            )
        return shape

    def _exists(self) -> bool:
        if not self.worksheet._exists():
            return False
        return _find(self._shapes(), self._name) is not None

    def __getattr__(self, attr: str) -> Any:
        # _read_<field> / _write_<field> for plain side-model fields.
        if attr.startswith("_read_") and attr[6:] in ShapeState.model_fields:
            field = attr[6:]
            return lambda: getattr(self._resolve(), field)
        if attr.startswith("_write_") and attr[7:] in ShapeState.model_fields:
            field = attr[7:]
            return lambda value: self._set(field, value)
        raise AttributeError(attr)

    def _set(self, field: str, value: Any) -> None:
        shape = self._resolve()
        if field == "name":
            if not value or not str(value).strip():
                raise HostError("Shape name must not be blank.", code="InvalidArgument")
            clash = _find(self._shapes(), str(value))
            if clash is not None and clash is not shape:
                raise HostError(
                    f"A shape named '{value}' already exists.", code="ItemAlreadyExists"
                )
            for other in self._shapes():
                if other.parent_group == shape.name:
                    other.parent_group = value
                other.members = [value if m == shape.name else m for m in other.members]
            self._name = value
        elif field in {"fill_color", "line_color", "font_color"} and value is not None:
            try:
                value = normalize_hex_input(str(value), field_name=field)
            except ValueError as exc:
                raise HostError(str(exc), code="InvalidArgument") from exc
        elif field in {"width", "height"} and float(value) <= 0:
            raise HostError(f"Shape {field} must be positive.", code="InvalidArgument")
        elif field == "fill_transparency" and not 0 <= float(value) <= 1:
            raise HostError(
                "Transparency must be between 0 and 1.", code="InvalidArgument"
            )
        elif field == "line_weight" and float(value) < 0:
            raise HostError("Line weight must not be negative.", code="InvalidArgument")
        elif field == "line_dash_style" and value not in LINE_DASH_STYLES:
            raise HostError(f"Invalid line dash style: {value}", code="InvalidArgument")
        elif field == "horizontal_alignment" and value not in _ALIGNMENTS:
            raise HostError(f"Invalid text alignment: {value}", code="InvalidArgument")
        elif field == "rotation":
            value = float(value) % 360
        elif field in {"text", "font_name", "font_size"} and shape.shape_type in {
            "Image",
            "Group",
        }:
            raise HostError(
                f"{shape.shape_type} shapes have no text frame.",
                code="InvalidOperation",
            )
        setattr(shape, field, value)

    def _read_z_order_position(self) -> int:
        return self._shapes().index(self._resolve())

    def delete(self) -> None:
        def _delete() -> None:
            shapes = self._shapes()
            shape = self._resolve()
            doomed = {shape.name, *shape.members}
            for other in shapes:
                if other.parent_group == shape.name:
                    doomed.add(other.name)
            if shape.parent_group is not None:
                parent = _find(shapes, shape.parent_group)
                if parent is not None:
                    parent.members = [m for m in parent.members if m != shape.name]
            shapes[:] = [other for other in shapes if other.name not in doomed]

        self._queue(_delete)

    def ungroup(self) -> None:
        def _ungroup() -> None:
            shapes = self._shapes()
            group = self._resolve()
            if group.shape_type != "Group":
                raise HostError(
                    f"Shape '{group.name}' is not a group.", code="InvalidOperation"
                )
            for other in shapes:
                if other.parent_group == group.name:
                    other.parent_group = None
            shapes.remove(group)

        self._queue(_ungroup)

    def set_z_order(self, position: str) -> None:
        def _arrange() -> None:
            if position not in Z_ORDER_POSITIONS:
                raise HostError(
                    f"Invalid z-order position: {position}", code="InvalidArgument"
                )
            shapes = self._shapes()
            shape = self._resolve()
            index = shapes.index(shape)
            shapes.pop(index)
            if position == "BringToFront":
                shapes.append(shape)
            elif position == "SendToBack":
                shapes.insert(0, shape)
            elif position == "BringForward":
                shapes.insert(min(index + 1, len(shapes)), shape)
            else:
                shapes.insert(max(index - 1, 0), shape)

        self._queue(_arrange)


def _find(shapes: list[ShapeState], name: str) -> ShapeState | None:
    folded = name.casefold()
    for shape in shapes:
        if shape.name.casefold() == folded:
            return shape
    return None


__all__ = [
    "GEOMETRIC_SHAPE_TYPES",
    "LINE_DASH_STYLES",
    "ShapeCollection",
    "ShapeProxy",
    "Z_ORDER_POSITIONS",
    "decode_image",
]
