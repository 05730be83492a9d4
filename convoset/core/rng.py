"""Deterministic per-row random streams, seed derivation and stable ids."""

import hashlib
import random
import uuid

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_KNUTH_MULTIPLIER = 2654435761


class RngStream:
    """
    Seeded pseudo-random stream with a draw counter.

    The sequence returned by ``next()`` is fully determined by the seed and the
    number of prior draws, so two streams built from the same seed replay the
    same values. The counter is what the Check/Generate cross-check compares.

    A stream belongs to exactly one row task; it is never shared.
    """

    def __init__(self, seed: int) -> None:
        self.seed = seed
        self._random = random.Random(seed)
        self._draws = 0

    @property
    def draws(self) -> int:
        """Number of values drawn since creation or the last reset."""
        return self._draws

    def next(self) -> float:
        """Return the next float in [0, 1) and advance the counter."""
        self._draws += 1
        return self._random.random()

    def reset(self) -> None:
        """Re-seed the stream and zero the counter."""
        self._random = random.Random(self.seed)
        self._draws = 0

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(seed={self.seed!r}, draws={self._draws})"


def derive_row_seed(base_seed: int | None, offset: int) -> int | None:
    """Return the seed of the row at ``offset`` within a schema entry."""
    if base_seed is None:
        return None
    return base_seed + offset


def ephemeral_seed() -> int:
    """Draw a non-reproducible seed for rows generated without one."""
    return random.SystemRandom().getrandbits(52)


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def row_id_from_seed(seed: int) -> str:
    """Derive a stable row id from a row seed."""
    hashed = abs(seed * _KNUTH_MULTIPLIER) % 4294967296
    return f"row_{seed}_{to_base36(hashed)}"


def make_generation_id(prefix: str, seed: int | None, step: int) -> str:
    """
    Build a generation id for a materialized entry.

    Seeded rows get ids derived from ``(seed, step, prefix)`` so reruns produce
    identical rows; unseeded rows get random ids. Neither consumes row draws.
    """
    if seed is None:
        return f"{prefix}_{uuid.uuid4().hex[:16]}"
    digest = hashlib.sha256(f"{seed}:{step}:{prefix}".encode()).hexdigest()
    return f"{prefix}_{digest[:16]}"
