"""Rapid MT-saturation mapping from PD-, T1- and MT-weighted spoiled gradient echoes."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, ClassVar, Mapping, Sequence, Tuple, Union

import numpy as np

ArrayLike = Union[float, np.ndarray]

_DEG = math.pi / 180.0


def _scalar_or_array(value: np.ndarray) -> ArrayLike:
    arr = np.asarray(value, dtype=float)
    return float(arr) if arr.ndim == 0 else arr


@dataclass(frozen=True)
class MTSatProtocol:
    """Repetition times (seconds) and flip angles (radians) of the three scans."""

    tr_pd: float
    tr_t1: float
    tr_mt: float
    al_pd: float
    al_t1: float
    al_mt: float

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "MTSatProtocol":
        """Read ``TR_pd``, ``TR_t1``, ``TR_mt`` and ``FA_pd``, ``FA_t1``, ``FA_mt`` (degrees)."""
        try:
            return cls(
                tr_pd=float(data["TR_pd"]),
                tr_t1=float(data["TR_t1"]),
                tr_mt=float(data["TR_mt"]),
                al_pd=float(data["FA_pd"]) * _DEG,
                al_t1=float(data["FA_t1"]) * _DEG,
                al_mt=float(data["FA_mt"]) * _DEG,
            )
        except KeyError as err:
            raise ValueError(f"MTSat protocol is missing field {err}") from err


@dataclass(frozen=True)
class MTSatModel:
    """Signal model and closed-form fit; ``c`` corrects delta for B1 inhomogeneity."""

    protocol: MTSatProtocol
    c: float = 0.4

    varying_names: ClassVar[Tuple[str, ...]] = ("PD", "R1", "delta")
    fixed_names: ClassVar[Tuple[str, ...]] = ("B1",)
    fixed_defaults: ClassVar[Tuple[float, ...]] = (1.0,)

    def signals(
        self, varying: Sequence[ArrayLike], b1: ArrayLike = 1.0
    ) -> Tuple[ArrayLike, ArrayLike, ArrayLike]:
        """PD-, T1- and MT-weighted signals for (S0, R1, delta in percent)."""
        if len(varying) != 3:
            raise ValueError(f"expected 3 varying parameters, got {len(varying)}")
        s0, r1, d_c = (np.asarray(v, dtype=float) for v in varying)
        b1 = np.asarray(b1, dtype=float)
        p = self.protocol
        delta = (d_c / 100.0) * (1.0 - self.c * b1) / (1.0 - self.c)

        def spgr(alpha: float, tr: float, saturation: ArrayLike = 0.0) -> np.ndarray:
            e1 = np.exp(-r1 * tr)
            return (
                s0
                * np.sin(b1 * alpha)
                * (1.0 - e1)
                / (1.0 - (1.0 - saturation) * np.cos(b1 * alpha) * e1)
            )

        s_pd = spgr(p.al_pd, p.tr_pd)
        s_t1 = spgr(p.al_t1, p.tr_t1)
        s_mt = spgr(p.al_mt, p.tr_mt, delta)
        return _scalar_or_array(s_pd), _scalar_or_array(s_t1), _scalar_or_array(s_mt)

    def fit(
        self, s_pd: ArrayLike, s_t1: ArrayLike, s_mt: ArrayLike, b1: ArrayLike = 1.0
    ) -> Tuple[ArrayLike, ArrayLike, ArrayLike]:
        """Return (PD, R1, delta in percent) from the three signals.

        R1 is clamped to [0, 10], PD to be non-negative and the corrected
        delta to [0, 0.1] before conversion to percent.
        """
        s_pd = np.asarray(s_pd, dtype=float)
        s_t1 = np.asarray(s_t1, dtype=float)
        s_mt = np.asarray(s_mt, dtype=float)
        b1 = np.asarray(b1, dtype=float)
        p = self.protocol
        with np.errstate(divide="ignore", invalid="ignore"):
            r1 = np.clip(
                (b1 * b1 / 2.0)
                * (s_t1 * p.al_t1 / p.tr_t1 - s_pd * p.al_pd / p.tr_pd)
                / (s_pd / p.al_pd - s_t1 / p.al_t1),
                0.0,
                10.0,
            )
            pd = np.maximum(
                (s_pd * s_t1 / b1)
                * (p.tr_pd * p.al_t1 / p.al_pd - p.tr_t1 * p.al_pd / p.al_t1)
                / (s_t1 * p.tr_pd * p.al_t1 - s_pd * p.tr_t1 * p.al_pd),
                0.0,
            )
            d = (pd * p.al_mt / s_mt - 1.0) * r1 * p.tr_mt - p.al_mt * p.al_mt / 2.0
            d_corrected = np.clip(d * (1.0 - self.c) / (1.0 - self.c * b1), 0.0, 0.1)
        return (
            _scalar_or_array(pd),
            _scalar_or_array(r1),
            _scalar_or_array(d_corrected * 100.0),
        )