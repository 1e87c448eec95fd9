from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Generic, TypeVar, cast

from anyio.lowlevel import checkpoint

if TYPE_CHECKING:  # pragma: no cover - typing only
    from openpyxl.workbook.workbook import Workbook

    from .state import WorkbookState
    from .workbook import WorkbookProxy

logger = logging.getLogger(__name__)

T = TypeVar("T")
_ObjT = TypeVar("_ObjT", bound="ClientObject")

DEFAULT_CAPABILITIES: frozenset[str] = frozenset(
    {
        "autofill",
        "charts",
        "pivot_tables",
        "slicers",
        "shapes",
        "threaded_comments",
        "sparklines",
        "linked_data_types",
        "named_sheet_views",
    }
)


class HostError(RuntimeError):
    """A queued batch was rejected by the host at a synchronization barrier."""

    def __init__(self, message: str, *, code: str = "GeneralException") -> None:
        super().__init__(message)
        self.code = code


class PropertyNotLoadedError(RuntimeError):
    """A proxy property was read before ``load()`` + ``sync()``."""


class HostProperty:
    """Descriptor for a proxy property that must be loaded before it is read."""

    def __init__(self, *, writable: bool = False) -> None:
        self.writable = writable
        self.name = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, obj: ClientObject | None, objtype: type | None = None) -> Any:
        if obj is None:
            return self
        try:
            return obj._loaded[self.name]
        except KeyError:
            raise PropertyNotLoadedError(
                f"{type(obj).__name__}.{self.name} is not loaded; "
                "call load() and sync() first."
            ) from None

    def __set__(self, obj: ClientObject, value: object) -> None:
        if not self.writable:
            raise AttributeError(f"{type(obj).__name__}.{self.name} is read-only.")
        obj._queue_write(self.name, value)


class ClientResult(Generic[T]):
    """Scalar result of a queued host method, available after the next sync."""

    def __init__(self) -> None:
        self._value: T | None = None
        self._ready = False

    @property
    def value(self) -> T:
        if not self._ready:
            raise PropertyNotLoadedError("Result is not available before sync().")
        return cast(T, self._value)

    def _resolve(self, value: T) -> None:
        self._value = value
        self._ready = True


class ClientObject:
    """Base class for host proxies with queued reads and writes."""

    is_null_object = HostProperty()

    def __init__(self, context: RequestContext) -> None:
        self.context = context
        self._loaded: dict[str, object] = {}

    def load(self: _ObjT, *names: str) -> _ObjT:
        """Queue a load of the named properties (``"a"``, ``"a,b"`` or several args)."""
        props = _split_names(names)

        def _load() -> None:
            for name in props:
                reader = getattr(self, f"_read_{name}", None)
                if reader is None:
                    raise HostError(
                        f"Unknown property '{name}' on {type(self).__name__}.",
                        code="InvalidArgument",
                    )
                self._loaded[name] = reader()

        self.context.enqueue(_load)
        return self

    def _queue_write(self, name: str, value: object) -> None:
        writer = getattr(self, f"_write_{name}")
        self.context.enqueue(lambda: writer(value))

    def _queue(self, operation: Callable[[], None]) -> None:
        self.context.enqueue(operation)

    def _queue_result(self, compute: Callable[[], T]) -> ClientResult[T]:
        result: ClientResult[T] = ClientResult()
        self.context.enqueue(lambda: result._resolve(compute()))
        return result

    def _exists(self) -> bool:
        return True

    def _read_is_null_object(self) -> bool:
        return not self._exists()


class RequestContext:
    """Batched request context over an openpyxl workbook.

    Mutations and loads are queued and only take effect at ``await sync()``.
    The first failing operation rejects the batch with ``HostError`` and the
    rest of that batch is discarded.
    """

    def __init__(
        self,
        book: Workbook,
        *,
        capabilities: Iterable[str] | None = None,
    ) -> None:
        from .state import WorkbookState
        from .workbook import WorkbookProxy

        self.book = book
        self.state: WorkbookState = WorkbookState()
        self.capabilities: frozenset[str] = (
            DEFAULT_CAPABILITIES if capabilities is None else frozenset(capabilities)
        )
        self.sync_count = 0
        self._pending: list[Callable[[], None]] = []
        self.workbook: WorkbookProxy = WorkbookProxy(self)

    @classmethod
    def from_path(
        cls, path: Path, *, capabilities: Iterable[str] | None = None
    ) -> RequestContext:
        """Open a workbook file as a request context."""
        from openpyxl import load_workbook

        if path.suffix.lower() == ".xls":
            raise ValueError("openpyxl cannot edit .xls files.")
        book = load_workbook(path, keep_vba=path.suffix.lower() == ".xlsm")
        return cls(book, capabilities=capabilities)

    @classmethod
    def new(cls, *, capabilities: Iterable[str] | None = None) -> RequestContext:
        """Create a context over a fresh single-sheet workbook."""
        from openpyxl import Workbook

        return cls(Workbook(), capabilities=capabilities)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def enqueue(self, operation: Callable[[], None]) -> None:
        self._pending.append(operation)

    async def sync(self) -> None:
        """Flush queued operations and populate requested loads."""
        await checkpoint()
        pending, self._pending = self._pending, []
        self.sync_count += 1
        try:
            for operation in pending:
                operation()
        except HostError:
            raise
        except (ValueError, KeyError, TypeError, IndexError) as exc:
            raise HostError(str(exc), code="InvalidArgument") from exc

    def save(self, path: Path) -> None:
        """Write the workbook to disk."""
        if self._pending:
            logger.warning("Saving with %d unsynced operation(s).", len(self._pending))
        self.book.save(path)

    def close(self) -> None:
        self.book.close()


def find_key(mapping: Mapping[str, T], name: str) -> str | None:
    """Return the stored key matching ``name`` case-insensitively."""
    if name in mapping:
        return name
    folded = name.casefold()
    for key in mapping:
        if key.casefold() == folded:
            return key
    return None


def _split_names(names: tuple[str, ...]) -> list[str]:
    props: list[str] = []
    for entry in names:
        props.extend(part.strip() for part in entry.split(",") if part.strip())
    return props


__all__ = [
    "DEFAULT_CAPABILITIES",
    "ClientObject",
    "ClientResult",
    "HostError",
    "HostProperty",
    "PropertyNotLoadedError",
    "RequestContext",
    "find_key",
]
