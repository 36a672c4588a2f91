"""Utility helpers for graphreg."""

from .arrays import as_matrix, as_vector, check_paired, is_off_diagonal_zero
from .io import read_yaml, write_yaml
from .logging import get_stream_logger
from .psd import project_to_psd
from .rand import (
    DEFAULT_SEED,
    DEFAULT_SEEDS,
    DEFAULT_STREAM,
    generator_from_seed,
    seed_for_stream,
    spawn_child_rng,
)

__all__ = [
    "DEFAULT_SEED",
    "DEFAULT_SEEDS",
    "DEFAULT_STREAM",
    "as_matrix",
    "as_vector",
    "check_paired",
    "generator_from_seed",
    "get_stream_logger",
    "is_off_diagonal_zero",
    "project_to_psd",
    "read_yaml",
    "seed_for_stream",
    "spawn_child_rng",
    "write_yaml",
]
