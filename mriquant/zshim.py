"""Combine z-shimmed (and y-shimmed) acquisitions by root-sum-of-squares."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class NoiseStats:
    """Summary of background noise samples."""

    samples: int
    mean: float
    sqr_mean: float
    sigma: float


def noise_statistics(samples) -> NoiseStats:
    """Mean, mean square and standard deviation of all values in ``samples``."""
    values = np.asarray(samples, dtype=float).ravel()
    if values.size == 0:
        raise ValueError("no noise samples given")
    mean = float(values.mean())
    sqr_mean = float((values * values).mean())
    sigma = math.sqrt(max(sqr_mean - mean * mean, 0.0))
    return NoiseStats(samples=int(values.size), mean=mean, sqr_mean=sqr_mean, sigma=sigma)


def combine_zshims(
    series,
    zshims: int = 8,
    yshims: int = 1,
    zdrop: int = 0,
    ydrop: int = 0,
    noise_sqr_mean: float = 0.0,
) -> np.ndarray:
    """Combine each block of ``zshims * yshims`` volumes along the last axis.

    Within a block the z-shim index varies fastest. ``zdrop``/``ydrop`` shims
    are discarded at each end of the grid. The noise mean square is subtracted
    from every squared value; negative totals give zero.
    """
    data = np.asarray(series, dtype=float)
    if zshims < 1 or yshims < 1:
        raise ValueError("zshims and yshims must be positive")
    if zdrop < 0 or ydrop < 0 or 2 * zdrop >= zshims or 2 * ydrop >= yshims:
        raise ValueError("cannot drop that many shims from the grid")
    gridsize = zshims * yshims
    outsize = data.shape[-1] // gridsize
    if outsize < 1:
        raise ValueError(
            f"series has {data.shape[-1]} volumes, fewer than one grid of {gridsize}"
        )
    grids = data[..., : outsize * gridsize].reshape(data.shape[:-1] + (outsize, yshims, zshims))
    block = grids[..., ydrop : yshims - ydrop, zdrop : zshims - zdrop]
    total = (block * block - noise_sqr_mean).sum(axis=(-2, -1))
    return np.sqrt(np.maximum(total, 0.0))