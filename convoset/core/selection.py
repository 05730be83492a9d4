"""Randomized selection primitives drawing from a row's ``RngStream``.

Every function here consumes a fixed, documented number of draws so the
Check and Generate phases stay in lockstep:

- ``weighted_choice``: exactly one draw.
- ``between``: exactly one draw.
- ``chance``: exactly one draw.
- ``sample``: one draw per picked item (``min(n, len(items))``).
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from convoset.core.errors import (
    InvalidWeightError,
    InvalidWeightTotalError,
    UniqueCollectionExhaustedError,
    UniqueConfigError,
    ValidationError,
)
from convoset.core.rng import RngStream
from convoset.core.unique import UniqueBy, UniqueSelectionStore

T = TypeVar("T")

_WEIGHT_TOLERANCE = 1e-9


@dataclass(frozen=True)
class Weighted(Generic[T]):
    """An option paired with an explicit selection probability."""

    value: T
    weight: float | None = None


def weighted(value: T, weight: float | None = None) -> Weighted[T]:
    """Wrap ``value`` with an explicit weight for ``one_of``."""
    return Weighted(value=value, weight=weight)


def _unwrap(option: Any) -> tuple[Any, Any]:
    if isinstance(option, Weighted):
        return option.value, option.weight
    if isinstance(option, Mapping) and "value" in option and set(option) <= {"value", "weight"}:
        return option["value"], option.get("weight")
    return option, None


def _validate_weight(weight: Any) -> float:
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        raise InvalidWeightError(f"one_of weight must be a number, got {weight!r}")
    if math.isnan(weight) or weight < 0 or weight > 1:
        raise InvalidWeightError(f"one_of weight values must be between 0 and 1, got {weight}")
    return float(weight)


def normalize_weights(options: Sequence[Any]) -> list[tuple[Any, float]]:
    """
    Resolve options into ``(value, weight)`` pairs.

    Options without a weight share the probability mass left over by the
    explicit ones evenly; if nothing is left they get weight 0.

    Raises:
        ValidationError: If ``options`` is empty.
        InvalidWeightError: If an explicit weight is outside [0, 1].
        InvalidWeightTotalError: If explicit weights sum to more than 1.
    """
    if not options:
        raise ValidationError("one_of requires at least one option")

    unwrapped = [_unwrap(option) for option in options]
    explicit_total = 0.0
    missing = 0
    for _, weight in unwrapped:
        if weight is None:
            missing += 1
        else:
            explicit_total += _validate_weight(weight)

    if explicit_total > 1 + _WEIGHT_TOLERANCE:
        raise InvalidWeightTotalError(
            f"one_of weight values must sum to 1 or less, got {explicit_total:.4f}"
        )

    remaining = max(0.0, 1.0 - explicit_total)
    shared = remaining / missing if missing else 0.0
    return [
        (value, shared if weight is None else float(weight))
        for value, weight in unwrapped
    ]


def weighted_choice(
    stream: RngStream,
    options: Sequence[Any],
    *,
    unique_by: UniqueBy | None = None,
    store: UniqueSelectionStore | None = None,
) -> Any:
    """
    Pick one option by weight, consuming exactly one draw.

    With ``unique_by``, identifiers already recorded in ``store`` are filtered
    out first and the chosen identifier is marked afterwards. Callers pass a
    provisional overlay during the Check phase.

    Raises:
        UniqueCollectionExhaustedError: If no unused candidate is left.
    """
    normalized = normalize_weights(options)

    candidates: list[tuple[Any, float, str | None]]
    if unique_by is not None:
        if store is None:
            raise UniqueConfigError("unique selection requires a UniqueSelectionStore")
        keyed = [(value, weight, unique_by.key_for(value)) for value, weight in normalized]
        candidates = [c for c in keyed if not store.has(unique_by.collection, c[2])]
        if not candidates:
            raise UniqueCollectionExhaustedError(unique_by.collection)
    else:
        candidates = [(value, weight, None) for value, weight in normalized]

    total_weight = sum(weight for _, weight, _ in candidates)
    draw = stream.next()

    if total_weight <= 0:
        index = min(int(draw * len(candidates)), len(candidates) - 1)
        chosen = candidates[index]
    else:
        needle = draw * total_weight
        cumulative = 0.0
        chosen = candidates[-1]
        for candidate in candidates:
            cumulative += candidate[1]
            if needle <= cumulative:
                chosen = candidate
                break

    if unique_by is not None and store is not None:
        store.mark(unique_by.collection, chosen[2])
    return chosen[0]


def between(stream: RngStream, minimum: int, maximum: int) -> int:
    """Return an integer in ``[minimum, maximum]``, consuming one draw."""
    if minimum > maximum:
        raise ValidationError(f"between requires min <= max, got {minimum} > {maximum}")
    return math.floor(stream.next() * (maximum - minimum + 1)) + minimum


def chance(stream: RngStream, probability: float = 0.5) -> bool:
    """Return True with ``probability``, consuming one draw."""
    return stream.next() < probability


def sample(stream: RngStream, n: int, items: Sequence[T]) -> list[T]:
    """Pick ``n`` distinct items with a partial Fisher-Yates shuffle."""
    pool = list(items)
    if n <= 0:
        return []
    count = min(n, len(pool))
    for i in range(count):
        j = i + math.floor(stream.next() * (len(pool) - i))
        pool[i], pool[j] = pool[j], pool[i]
    return pool[:count]
