"""Two-pool (free/bound) MT model for bSSFP ellipse parameters G, a and b."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import ClassVar, Sequence, Tuple

import numpy as np
from scipy.optimize import least_squares


@dataclass(eq=False)
class SSFPMTProtocol:
    """Per-acquisition TR (s), flip angle (rad) and pulse length (s), plus pulse shape factors."""

    tr: np.ndarray
    fa: np.ndarray
    trf: np.ndarray
    p1: float
    p2: float

    def __post_init__(self) -> None:
        self.tr = np.atleast_1d(np.asarray(self.tr, dtype=float)).ravel()
        self.fa = np.atleast_1d(np.asarray(self.fa, dtype=float)).ravel()
        trf = np.atleast_1d(np.asarray(self.trf, dtype=float)).ravel()
        if trf.size == 1:
            trf = np.full(self.fa.size, trf[0])
        self.trf = trf
        if not (self.tr.size == self.fa.size == self.trf.size):
            raise ValueError("TR, FA and Trf must have the same number of entries")

    def size(self) -> int:
        return int(self.fa.size)


def saturation_rate(protocol: SSFPMTProtocol, g0: float = 1.4e-5) -> np.ndarray:
    """Bound-pool saturation rate W for each acquisition, given lineshape value ``g0``."""
    return (
        math.pi
        * g0
        * (protocol.p2 / protocol.p1**2)
        * (protocol.fa / protocol.trf) ** 2
    )


def t2_free_from_a(tr, a) -> np.ndarray:
    """Free-pool T2 from the ellipse parameter ``a``, averaged over the last axis."""
    a_arr = np.asarray(a, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        t2s = -np.asarray(tr, dtype=float) / np.log(a_arr)
    result = t2s.mean(axis=-1)
    return float(result) if np.ndim(result) == 0 else result


@dataclass(eq=False)
class EMTModel:
    """Varying parameters are PD, f_b, k_bf and T1_f; fixed are B1 and T2_f."""

    protocol: SSFPMTProtocol
    w: np.ndarray

    varying_names: ClassVar[Tuple[str, ...]] = ("PD", "f_b", "k_bf", "T1_f")
    fixed_names: ClassVar[Tuple[str, ...]] = ("B1", "T2_f")
    fixed_defaults: ClassVar[Tuple[float, ...]] = (1.0, 0.1)
    start: ClassVar[Tuple[float, ...]] = (13.0, 0.1, 2.0, 0.8)
    lo: ClassVar[Tuple[float, ...]] = (0.1, 1e-6, 1.0, 0.05)
    hi: ClassVar[Tuple[float, ...]] = (20.0, 0.2, 10.0, 5.0)

    def __post_init__(self) -> None:
        w = np.atleast_1d(np.asarray(self.w, dtype=float)).ravel()
        if w.size == 1:
            w = np.full(self.protocol.size(), w[0])
        if w.size != self.protocol.size():
            raise ValueError("W must have one entry per acquisition")
        self.w = w

    def signals(
        self, varying: Sequence[float], b1: float = 1.0, t2_f: float = 0.1
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return the ellipse parameters (G, a, b) for every acquisition."""
        v = np.asarray(varying, dtype=float).ravel()
        if v.size != len(self.varying_names):
            raise ValueError(f"expected 4 varying parameters, got {v.size}")
        m0, f_b, k_bf, t1_f = v
        f_f = 1.0 - f_b
        t1_b = t1_f
        p = self.protocol
        tr = p.tr

        e1_f = np.exp(-tr / t1_f)
        e2_f = np.exp(-tr / t2_f)
        e2_fe = np.exp(-tr / (2.0 * t2_f))
        k_fb = k_bf * f_f / f_b if f_b > 0.0 else 0.0
        e1_b = np.exp(-tr / t1_b)
        ek = np.exp(-tr * (k_bf + k_fb))
        ew = np.exp(-self.w * b1 * b1 * p.trf)

        a_term = 1.0 - ew * e1_b * (f_b + f_f * ek)
        b_term = f_f - ek * (ew * e1_b - f_b)
        c_term = f_b * (1.0 - e1_b) * (1.0 - ek)

        cos_a = np.cos(b1 * p.fa)
        sin_a = np.sin(b1 * p.fa)
        denom = a_term - b_term * e1_f * cos_a - (e2_f * e2_f) * (b_term * e1_f - a_term * cos_a)
        g = m0 * e2_fe * (sin_a * (b_term * (1.0 - e1_f) + c_term)) / denom
        b = (e2_f * (a_term - b_term * e1_f) * (1.0 + cos_a)) / denom
        a = np.exp(-tr / t2_f)
        return g, a, b


@dataclass(eq=False)
class EMTFitResult:
    """Fitted parameters with PD in data units, final cost, residuals (G, a, b) and evaluations."""

    params: np.ndarray
    cost: float
    residuals: np.ndarray
    iterations: int


def fit_emt(model: EMTModel, g, a, b, b1: float = 1.0, t2_f: float = 0.1) -> EMTFitResult:
    """Fit PD, f_b, k_bf and T1_f to G and b with a Huber loss, within the model bounds."""
    g_arr = np.asarray(g, dtype=float).ravel()
    a_arr = np.asarray(a, dtype=float).ravel()
    b_arr = np.asarray(b, dtype=float).ravel()
    n = model.protocol.size()
    if not (g_arr.size == a_arr.size == b_arr.size == n):
        raise ValueError(f"G, a and b must each have {n} entries")
    scale = float(g_arr.mean())
    if scale == 0.0 or not math.isfinite(scale):
        raise ValueError("mean of G must be finite and non-zero")
    g_norm = g_arr / scale

    def residual(v: np.ndarray) -> np.ndarray:
        sig_g, _, sig_b = model.signals(v, b1, t2_f)
        return np.concatenate((g_norm - sig_g, b_arr - sig_b))

    result = least_squares(
        residual,
        np.array(model.start, dtype=float),
        bounds=(np.array(model.lo), np.array(model.hi)),
        loss="huber",
        f_scale=1.0,
        ftol=1e-7,
        gtol=1e-8,
        xtol=1e-3,
        max_nfev=100,
    )
    if not np.all(np.isfinite(result.x)) or not math.isfinite(result.cost):
        raise RuntimeError(f"EMT fit failed: {result.message}")

    params = result.x.copy()
    fit_res = residual(params)
    params[0] *= scale
    a_model = np.exp(-model.protocol.tr / t2_f)
    residuals = np.concatenate((fit_res[:n], a_model - a_arr, fit_res[n:]))
    return EMTFitResult(
        params=params,
        cost=float(result.cost),
        residuals=residuals,
        iterations=int(result.nfev),
    )