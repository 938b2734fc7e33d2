"""Utility helpers shared by dataset loaders and pipelines."""

from __future__ import annotations

import random
from pathlib import Path

import numpy as np

from ..core import matrix as mx


def seed_everything(seed: int) -> np.random.Generator:
    """Seed Python, NumPy and the matrix engine RNGs and return a generator."""

    random.seed(seed)
    np.random.seed(seed % (2**32 - 1))
    mx.reseed(seed)
    return np.random.default_rng(seed)


def ensure_dir(path: str | Path) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


__all__ = ["ensure_dir", "seed_everything"]
