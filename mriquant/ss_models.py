"""Steady-state signal models for segmented sequences with per-segment preparation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import ClassVar, Sequence, Tuple

import numpy as np
from scipy.linalg import expm

from .sequences import SSSequence
from .steady_state import geometric_avg, solve_steady_state


def _unpack(varying: Sequence[float], names: Tuple[str, ...]) -> np.ndarray:
    values = np.asarray(varying, dtype=float).ravel()
    if values.size != len(names):
        raise ValueError(
            f"expected {len(names)} varying parameters {names}, got {values.size}"
        )
    return values


@dataclass(eq=False)
class SST1Model:
    """Longitudinal-only model: varying parameters are M0, T1 and B1."""

    sequence: SSSequence

    NS: ClassVar[int] = 1
    varying_names: ClassVar[Tuple[str, ...]] = ("M0", "T1", "B1")
    start: ClassVar[Tuple[float, ...]] = (30.0, 1.0, 1.0)
    lo: ClassVar[Tuple[float, ...]] = (0.1, 0.5, 0.5)
    hi: ClassVar[Tuple[float, ...]] = (60.0, 5.0, 1.5)

    def input_size(self) -> int:
        return self.sequence.size()

    def signal(self, varying: Sequence[float]) -> np.ndarray:
        m0, t1, b1 = _unpack(varying, self.varying_names)
        r1 = 1.0 / t1
        seq = self.sequence
        relax = np.array([[-r1, m0 * r1], [0.0, 0.0]])
        rrd = expm(relax * seq.tr)
        ramp = expm(relax * seq.tramp)
        spokes = int(seq.spokes_per_seg)

        sig = np.empty(seq.size())
        for i, (fa, prep_fa) in enumerate(zip(seq.fa, seq.prep_fa)):
            rf1 = np.diag([math.cos(b1 * fa), 1.0])
            tr_mat = rrd @ rf1
            seg_mat = np.linalg.matrix_power(tr_mat, spokes)
            rfp = np.diag([math.cos(b1 * prep_fa), 1.0])
            x = ramp @ rfp @ ramp @ seg_mat
            m_ss = solve_steady_state(x)
            m_gm = geometric_avg(tr_mat, seg_mat, m_ss, spokes)
            sig[i] = m_gm[0] * math.sin(b1 * fa)
        return sig


@dataclass(eq=False)
class SST1T2Model:
    """Bloch model with transverse terms: varying parameters are M0, T1, T2, f0 and B1."""

    sequence: SSSequence

    NS: ClassVar[int] = 1
    varying_names: ClassVar[Tuple[str, ...]] = ("M0", "T1", "T2", "f0", "B1")
    start: ClassVar[Tuple[float, ...]] = (30.0, 1.0, 0.07, 0.0, 1.0)
    lo: ClassVar[Tuple[float, ...]] = (0.1, 0.5, 0.01, -250.0, 0.5)
    hi: ClassVar[Tuple[float, ...]] = (60.0, 5.0, 2.5, 250.0, 1.5)

    def input_size(self) -> int:
        return self.sequence.size()

    def signal(self, varying: Sequence[float]) -> np.ndarray:
        m0, t1, t2, f0, b1_plus = _unpack(varying, self.varying_names)
        r1 = 1.0 / t1
        r2 = 1.0 / t2
        seq = self.sequence

        relax = np.array(
            [
                [-r2, 0.0, 0.0, 0.0],
                [0.0, -r2, 0.0, 0.0],
                [0.0, 0.0, -r1, r1],
                [0.0, 0.0, 0.0, 0.0],
            ]
        )
        spoil = np.diag([0.0, 0.0, 1.0, 1.0])

        def rf_matrix(alpha: float, tau: float, df: float, p1: float) -> np.ndarray:
            b1 = b1_plus * alpha / (p1 * tau)
            dw = 2.0 * math.pi * (f0 + df)
            rf = np.array(
                [
                    [0.0, dw, 0.0, 0.0],
                    [-dw, 0.0, b1, 0.0],
                    [0.0, -b1, 0.0, 0.0],
                    [0.0, 0.0, 0.0, 0.0],
                ]
            )
            return expm((rf + relax) * tau)

        rrd = expm(relax * (seq.tr - seq.trf))
        ramp = expm(relax * seq.tramp)
        spokes = int(seq.spokes_per_seg)

        sig = np.empty(seq.size())
        for i, (fa, prep_fa, prep_df) in enumerate(zip(seq.fa, seq.prep_fa, seq.prep_df)):
            rfp = rf_matrix(prep_fa, seq.prep_trf, prep_df, seq.prep_p1)
            rf1 = rf_matrix(fa, seq.trf, 0.0, 1.0)
            tr_mat = spoil @ rrd @ rf1
            seg_mat = np.linalg.matrix_power(tr_mat, spokes)
            x = ramp @ spoil @ rfp @ ramp @ seg_mat
            m_ss = solve_steady_state(x)
            m_gm = geometric_avg(tr_mat, seg_mat, m_ss, spokes)
            sig[i] = m0 * m_gm[2] * math.sin(b1_plus * fa)
        return sig