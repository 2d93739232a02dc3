"""
Deterministic Hashing

Stable seeds for basket selection. Python's built-in ``hash`` is salted per
process, so identifiers are hashed with an explicit, versioned function and
fed to a small fixed-width PRNG. Changing either function requires bumping
HASH_VERSION, since it remaps every target to a new basket.
"""

from typing import Callable, List, Sequence, TypeVar

HASH_VERSION = 1

_MASK32 = 0xFFFFFFFF
_FNV_OFFSET_BASIS = 0x811C9DC5
_FNV_PRIME = 0x01000193

T = TypeVar("T")


def stable_hash(value: str) -> int:
    """FNV-1a 32-bit hash of the UTF-8 bytes of ``value``."""
    h = _FNV_OFFSET_BASIS
    for byte in value.encode("utf-8"):
        h ^= byte
        h = (h * _FNV_PRIME) & _MASK32
    return h


def _imul(a: int, b: int) -> int:
    """32-bit wrapping multiply."""
    return (a * b) & _MASK32


def mulberry32(seed: int) -> Callable[[], float]:
    """
    Mulberry32 generator returning floats in [0, 1).

    Every operation is masked to 32 bits so the sequence is identical on any
    platform.
    """
    state = seed & _MASK32

    def next_float() -> float:
        nonlocal state
        state = (state + 0x6D2B79F5) & _MASK32
        t = state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296.0

    return next_float


def seeded_sample(items: Sequence[T], count: int, seed: int) -> List[T]:
    """Draw ``count`` items without replacement, reproducibly for a seed."""
    rng = mulberry32(seed)
    pool = list(items)
    picks: List[T] = []

    for _ in range(min(max(count, 0), len(pool))):
        index = int(rng() * len(pool))
        picks.append(pool.pop(index))

    return picks
