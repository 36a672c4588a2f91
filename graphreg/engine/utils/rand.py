"""Explicit random-stream handling for graphreg.

No function in the package touches NumPy's global random state: stochastic
steps receive a :class:`numpy.random.Generator` resolved here, either from a
caller supplied seed/generator or from the default seed of a named stream.
"""

from __future__ import annotations

from collections.abc import Mapping

import numpy as np

DEFAULT_STREAM = "global"
DEFAULT_SEED = 42
DEFAULT_SEEDS: Mapping[str, int] = {DEFAULT_STREAM: DEFAULT_SEED, "folds": 2024}

__all__ = [
    "DEFAULT_SEED",
    "DEFAULT_SEEDS",
    "DEFAULT_STREAM",
    "generator_from_seed",
    "seed_for_stream",
    "spawn_child_rng",
]


def seed_for_stream(stream: str = DEFAULT_STREAM, *, seeds: Mapping[str, int] | None = None) -> int:
    """Return the seed registered for ``stream``, falling back to ``global``."""

    seeds_dict = dict(DEFAULT_SEEDS if seeds is None else seeds)
    seeds_dict.setdefault(DEFAULT_STREAM, DEFAULT_SEED)
    return int(seeds_dict.get(stream, seeds_dict[DEFAULT_STREAM]))


def generator_from_seed(
    seed: int | np.random.Generator | None = None,
    *,
    stream: str = DEFAULT_STREAM,
    seeds: Mapping[str, int] | None = None,
) -> np.random.Generator:
    """Resolve ``seed`` into a NumPy generator.

    Generators are passed through untouched so that a caller can thread one
    handle through a whole call chain; integers seed a fresh generator and
    ``None`` uses the default seed of ``stream``.
    """

    if isinstance(seed, np.random.Generator):
        return seed
    if seed is None:
        seed = seed_for_stream(stream, seeds=seeds)
    return np.random.default_rng(int(seed))


def spawn_child_rng(parent: np.random.Generator, *, jumps: int = 1) -> np.random.Generator:
    """Return a child generator on a jumped, non-overlapping stream."""

    if jumps < 1:
        raise ValueError("jumps must be >= 1")
    return np.random.Generator(parent.bit_generator.jumped(jumps))
