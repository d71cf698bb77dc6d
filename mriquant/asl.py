"""Cerebral blood flow from continuous arterial spin labelling label/control pairs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(eq=False)
class CASLProtocol:
    """TR, label duration and post-label delay(s), all in seconds.

    ``post_label_delay`` holds either one value or one per slice.
    """

    tr: float
    label_time: float
    post_label_delay: np.ndarray

    def __post_init__(self) -> None:
        self.post_label_delay = np.atleast_1d(
            np.asarray(self.post_label_delay, dtype=float)
        ).ravel()
        if self.post_label_delay.size == 0:
            raise ValueError("at least one post-label delay is required")


def cbf_scales(
    protocol: CASLProtocol, t1_blood: float = 1.65, alpha: float = 0.9, lam: float = 0.9
) -> np.ndarray:
    """Factor converting a normalised difference to CBF (mL/100g/min) for each delay."""
    return (
        6000.0
        * lam
        * np.exp(protocol.post_label_delay / t1_blood)
        / (2.0 * alpha * t1_blood * (1.0 - np.exp(-protocol.label_time / t1_blood)))
    )


def compute_cbf(
    series,
    protocol: CASLProtocol,
    dummies: int = 0,
    average: bool = False,
    t1_tissue=None,
    pd=None,
    mask=None,
    t1_blood: float = 1.65,
    alpha: float = 0.9,
    lam: float = 0.9,
) -> np.ndarray:
    """CBF for a 4-D series with axes (x, y, slice, volume).

    Volumes alternate label then control after ``dummies`` discarded pairs.
    Returns shape (x, y, slice, pairs), or (x, y, slice, 1) when averaging.
    Without ``pd`` the mean control signal is used as proton density; a tissue
    T1 map corrects it for incomplete recovery. Voxels outside ``mask`` are zero.
    """
    data = np.asarray(series, dtype=float)
    if data.ndim != 4:
        raise ValueError(f"series must be 4-D (x, y, slice, volume), got {data.ndim}-D")
    if dummies < 0:
        raise ValueError(f"dummies must be non-negative, got {dummies}")
    n_slices = data.shape[2]
    delays = protocol.post_label_delay.size
    if delays > 1 and delays != n_slices:
        raise ValueError(
            f"Number of post-label delays {delays} does not match number of slices {n_slices}"
        )
    insize = data.shape[3] - 2 * dummies
    pairs = insize // 2
    if pairs < 1:
        raise ValueError("series holds no label/control pairs after discarding dummies")

    raw = data[..., 2 * dummies : 2 * dummies + 2 * pairs]
    label = raw[..., 0::2]
    control = raw[..., 1::2]
    difference = control - label

    with np.errstate(divide="ignore", invalid="ignore"):
        if t1_tissue is not None:
            correction = 1.0 - np.exp(-protocol.tr / np.asarray(t1_tissue, dtype=float))
        else:
            correction = 1.0
        base = np.asarray(pd, dtype=float) if pd is not None else control.mean(axis=-1)
        proton_density = base / correction

        scales = cbf_scales(protocol, t1_blood, alpha, lam)
        if delays > 1:
            scale = scales[np.newaxis, np.newaxis, :, np.newaxis]
        else:
            scale = scales[0]
        cbf = scale * difference / np.asarray(proton_density)[..., np.newaxis]

    if average:
        cbf = cbf.mean(axis=-1, keepdims=True)
    if mask is not None:
        inside = np.asarray(mask) != 0
        cbf = np.where(inside[..., np.newaxis], cbf, 0.0)
    return cbf