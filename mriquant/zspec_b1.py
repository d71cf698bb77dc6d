"""Correct Z-spectra acquired at several saturation powers for B1 inhomogeneity.

Each frequency offset is treated separately. The measured values across the
saturation levels are regressed onto the nominal RMS B1 scaled by the local
B1, and the spectra are replaced by the fitted line evaluated at the nominal
powers.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np


def _corrected(stack: np.ndarray, b1: np.ndarray, b1_rms: np.ndarray) -> np.ndarray:
    """``stack`` has the B1 levels first and frequencies last; ``b1`` matches the middle axes."""
    rms = b1_rms.reshape((-1,) + (1,) * (stack.ndim - 1))
    b1_b = np.asarray(b1, dtype=float)[..., np.newaxis]
    with np.errstate(divide="ignore", invalid="ignore"):
        numerator = (stack * b1_b * rms).sum(axis=0)
        denominator = (stack * stack).sum(axis=0)
        slope = numerator / denominator
    return slope[np.newaxis, ...] * rms


def _rms_array(b1_rms: Sequence[float], n_inputs: int) -> np.ndarray:
    rms = np.asarray(b1_rms, dtype=float).ravel()
    if rms.size != n_inputs:
        raise ValueError("The number of B1 RMS entries must match the number of inputs")
    return rms


def correct_voxel(spectra, b1: float, b1_rms: Sequence[float]) -> np.ndarray:
    """Correct one voxel.

    ``spectra`` holds one Z-spectrum per saturation level, shape (levels, offsets).
    Returns an array of the same shape.
    """
    stack = np.asarray(spectra, dtype=float)
    if stack.ndim != 2:
        raise ValueError("spectra must have shape (levels, offsets)")
    rms = _rms_array(b1_rms, stack.shape[0])
    return _corrected(stack, np.asarray(float(b1)), rms)


def correct_volume(
    inputs: Sequence,
    b1_map,
    b1_rms: Sequence[float],
    mask=None,
) -> List[np.ndarray]:
    """Correct whole images, one per saturation level.

    Each input has the shape of ``b1_map`` plus a trailing frequency axis.
    Voxels outside ``mask`` are set to zero.
    """
    arrays = [np.asarray(i, dtype=float) for i in inputs]
    if not arrays:
        raise ValueError("at least one input Z-spectrum image is required")
    b1 = np.asarray(b1_map, dtype=float)
    n_offsets = arrays[0].shape[-1]
    for arr in arrays:
        if arr.ndim != b1.ndim + 1:
            raise ValueError("inputs must have the B1 map's shape plus a frequency axis")
        if arr.shape[-1] != n_offsets:
            raise ValueError("All input Z-spectra must be the same length")
        if arr.shape[:-1] != b1.shape:
            raise ValueError(
                f"input spatial shape {arr.shape[:-1]} does not match B1 map {b1.shape}"
            )
    rms = _rms_array(b1_rms, len(arrays))
    result = _corrected(np.stack(arrays), b1, rms)
    if mask is not None:
        inside = np.asarray(mask) != 0
        if inside.shape != b1.shape:
            raise ValueError("mask must have the same shape as the B1 map")
        result = np.where(inside[np.newaxis, ..., np.newaxis], result, 0.0)
    return list(result)