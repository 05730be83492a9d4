"""Unique-selection store backing sampling without replacement."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from convoset.core.errors import UniqueConfigError

ItemIdResolver = str | Callable[[Any], Any]


@dataclass(frozen=True)
class UniqueBy:
    """Sampling-without-replacement configuration for ``one_of``."""

    collection: str
    """Name of the pool the chosen identifiers are recorded under."""

    item_id: ItemIdResolver | None = None
    """
    Attribute/key name or callable resolving an option to its identifier.

    When omitted, primitive options identify themselves and mappings or
    objects are identified by their ``"id"``.
    """

    def __post_init__(self) -> None:
        if not isinstance(self.collection, str) or not self.collection.strip():
            raise UniqueConfigError("unique_by collection must be a non-empty string")
        object.__setattr__(self, "collection", self.collection.strip())

    def key_for(self, value: Any) -> str:
        """Return the namespaced identifier of an option value."""
        raw = self._resolve_raw(value)
        if raw is None or not isinstance(raw, (str, int, float, bool)):
            raise UniqueConfigError(
                f"unique_by item_id {self.item_id!r} must resolve to a "
                f"string, number, or boolean (got {type(raw).__name__})"
            )
        return f"{type(raw).__name__}:{raw}"

    def _resolve_raw(self, value: Any) -> Any:
        if callable(self.item_id):
            return self.item_id(value)
        if self.item_id is None and isinstance(value, (str, int, float, bool)):
            return value
        key = self.item_id or "id"
        if isinstance(value, Mapping):
            return value.get(key)
        if value is None or isinstance(value, (str, int, float, bool)):
            raise UniqueConfigError(
                f"unique_by item_id {key!r} requires option values to be "
                f"mappings or objects"
            )
        return getattr(value, key, None)


class UniqueSelectionStore:
    """
    Mapping from collection name to the identifiers already chosen.

    A store is created per generation run (or per row, see
    ``GenerationConfig.unique_scope``) and handed to every row context
    explicitly. ``overlay()`` returns a provisional child view: reads fall
    through to the parent, marks stay local and vanish with the overlay. The
    Check phase works on an overlay so the dry run never exhausts the pool.

    Check-then-mark happens without suspension points, which keeps it atomic
    under the event loop. Sharing a store across OS threads would need a lock.
    """

    def __init__(self, parent: "UniqueSelectionStore | None" = None) -> None:
        self._used: dict[str, set[str]] = {}
        self._parent = parent

    def has(self, collection: str, key: str) -> bool:
        if key in self._used.get(collection, ()):
            return True
        return self._parent is not None and self._parent.has(collection, key)

    def mark(self, collection: str, key: str) -> None:
        self._used.setdefault(collection, set()).add(key)

    def release(self, collection: str, key: str) -> None:
        """Return ``key`` to the pool of ``collection``."""
        self._used.get(collection, set()).discard(key)

    def used(self, collection: str) -> frozenset[str]:
        """Return every identifier consumed in ``collection``."""
        local = self._used.get(collection, set())
        if self._parent is None:
            return frozenset(local)
        return frozenset(local) | self._parent.used(collection)

    def overlay(self) -> "UniqueSelectionStore":
        return UniqueSelectionStore(parent=self)

    def tracking(self) -> "TrackingSelectionStore":
        return TrackingSelectionStore(self)

    def clear(self) -> None:
        self._used.clear()

    def __repr__(self) -> str:
        sizes = {name: len(keys) for name, keys in self._used.items()}
        return f"{self.__class__.__name__}({sizes})"


class TrackingSelectionStore(UniqueSelectionStore):
    """
    Write-through view of a store that remembers its own marks.

    A row generates against a tracking view of the run store. Marks land in
    the run store immediately, so concurrent rows see them, and
    ``rollback()`` returns them to the pool if the row is dropped.
    """

    def __init__(self, target: UniqueSelectionStore) -> None:
        super().__init__(parent=target)
        self._target = target
        self.marked: list[tuple[str, str]] = []

    def mark(self, collection: str, key: str) -> None:
        self._target.mark(collection, key)
        self.marked.append((collection, key))

    def rollback(self) -> None:
        for collection, key in self.marked:
            self._target.release(collection, key)
        self.marked.clear()
