"""Transient-state models for RUFIS sequences with named preparation pulses."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import ClassVar, List, Sequence, Tuple

import numpy as np
from scipy.linalg import expm

from .sequences import RUFISSequence
from .steady_state import geometric_avg, solve_steady_state

_G0 = 1.4e-5
_EXCHANGE_RATE = 4.3


def _unpack(varying: Sequence[float], names: Tuple[str, ...]) -> np.ndarray:
    values = np.asarray(varying, dtype=float).ravel()
    if values.size != len(names):
        raise ValueError(
            f"expected {len(names)} varying parameters {names}, got {values.size}"
        )
    return values


def _spokes_per_group(sequence: RUFISSequence, index: int) -> int:
    return int(sequence.spokes_per_seg) // int(sequence.groups_per_seg[index])


def _single_pool_signal(
    sequence: RUFISSequence, m0: float, t1: float, t2: float, b1: float
) -> np.ndarray:
    r1 = 1.0 / t1
    r2 = 1.0 / t2
    relax = np.array(
        [
            [-r2, 0.0, 0.0, 0.0],
            [0.0, -r2, 0.0, 0.0],
            [0.0, 0.0, -r1, r1],
            [0.0, 0.0, 0.0, 0.0],
        ]
    )
    rrd = expm(relax * sequence.tr)
    spoil = np.diag([0.0, 0.0, 1.0, 1.0])
    ramp = expm(relax * sequence.tramp)
    n = sequence.size()

    tr_mats: List[np.ndarray] = []
    seg_mats: List[np.ndarray] = []
    for i in range(n):
        b1x = b1 * sequence.fa[i] / sequence.trf[i]
        rf = np.zeros((4, 4))
        rf[1, 2] = b1x
        rf[2, 1] = -b1x
        ard = expm((relax + rf) * sequence.trf[i])
        tr_mat = spoil @ rrd @ ard
        tr_mats.append(tr_mat)
        seg_mats.append(np.linalg.matrix_power(tr_mat, _spokes_per_group(sequence, i)))

    prep_mats: List[np.ndarray] = []
    for name in sequence.prep:
        p = sequence.prep_pulses[name]
        e2 = math.exp(-r2 * p.t_trans)
        e1 = math.exp(-r1 * p.t_long)
        c = np.zeros((4, 4))
        c[2, 2] = e1 * e2 * math.cos(p.fa_eff)
        c[2, 3] = 1.0 - e1
        c[3, 3] = 1.0
        prep_mats.append(c)

    x = np.eye(4)
    for i in range(n):
        for _ in range(int(sequence.groups_per_seg[i])):
            x = ramp @ seg_mats[i] @ ramp @ prep_mats[i] @ x
    m_current = solve_steady_state(x)

    sig = np.empty(n)
    for i in range(n):
        groups = int(sequence.groups_per_seg[i])
        accumulate = 0.0
        for _ in range(groups):
            m_prepped = ramp @ prep_mats[i] @ m_current
            m_avg = geometric_avg(
                tr_mats[i], seg_mats[i], m_prepped, _spokes_per_group(sequence, i)
            )
            accumulate += m_avg[2] * math.sin(b1 * sequence.fa[i])
            m_current = ramp @ seg_mats[i] @ m_prepped
        sig[i] = m0 * accumulate / groups
    return sig


@dataclass(eq=False)
class MUPAModel:
    """Single-pool model: varying parameters are M0, T1 and T2."""

    sequence: RUFISSequence

    NS: ClassVar[int] = 1
    varying_names: ClassVar[Tuple[str, ...]] = ("M0", "T1", "T2")
    start: ClassVar[Tuple[float, ...]] = (30.0, 1.0, 0.1)
    lo: ClassVar[Tuple[float, ...]] = (1.0, 0.01, 0.01)
    hi: ClassVar[Tuple[float, ...]] = (150.0, 5.0, 5.0)

    def input_size(self) -> int:
        return self.sequence.size()

    def signal(self, varying: Sequence[float]) -> np.ndarray:
        m0, t1, t2 = _unpack(varying, self.varying_names)
        return _single_pool_signal(self.sequence, m0, t1, t2, 1.0)


@dataclass(eq=False)
class MUPAB1Model:
    """Single-pool model with a B1 scale: varying parameters are M0, T1, T2 and B1."""

    sequence: RUFISSequence

    NS: ClassVar[int] = 1
    varying_names: ClassVar[Tuple[str, ...]] = ("M0", "T1", "T2", "B1")
    start: ClassVar[Tuple[float, ...]] = (30.0, 1.0, 0.1, 1.0)
    lo: ClassVar[Tuple[float, ...]] = (1.0, 0.01, 0.01, 0.5)
    hi: ClassVar[Tuple[float, ...]] = (150.0, 5.0, 5.0, 1.5)

    def input_size(self) -> int:
        return self.sequence.size()

    def signal(self, varying: Sequence[float]) -> np.ndarray:
        m0, t1, t2, b1 = _unpack(varying, self.varying_names)
        return _single_pool_signal(self.sequence, m0, t1, t2, b1)


@dataclass(eq=False)
class MUPAMTModel:
    """Two-pool MT model: varying parameters are M0_f, M0_b, T1_f, T2_f and B1."""

    sequence: RUFISSequence

    NS: ClassVar[int] = 2
    varying_names: ClassVar[Tuple[str, ...]] = ("M0_f", "M0_b", "T1_f", "T2_f", "B1")
    derived_names: ClassVar[Tuple[str, ...]] = ("f_b",)
    start: ClassVar[Tuple[float, ...]] = (30.0, 3.0, 1.0, 0.1, 1.0)
    lo: ClassVar[Tuple[float, ...]] = (0.1, 0.1, 0.5, 0.005, 0.5)
    hi: ClassVar[Tuple[float, ...]] = (100.0, 60.0, 5.0, 5.0, 1.5)

    def input_size(self) -> int:
        return self.sequence.size()

    def signal(self, varying: Sequence[float]) -> np.ndarray:
        m0_f, m0_b, t1_f, t2_f, b1 = _unpack(varying, self.varying_names)
        seq = self.sequence
        r1_f = 1.0 / t1_f
        r1_b = r1_f
        r2_f = 1.0 / t2_f
        total = m0_f + m0_b
        k_bf = _EXCHANGE_RATE * m0_f / total
        k_fb = _EXCHANGE_RATE * m0_b / total

        relax = np.zeros((5, 5))
        relax[0, 0] = relax[1, 1] = -r2_f
        relax[2, 2] = -r1_f
        relax[2, 4] = m0_f * r1_f
        relax[3, 3] = -r1_b
        relax[3, 4] = m0_b * r1_b

        exchange = np.zeros((5, 5))
        exchange[2, 2] = -k_fb
        exchange[2, 3] = k_bf
        exchange[3, 2] = k_fb
        exchange[3, 3] = -k_bf

        spoil = np.diag([0.0, 0.0, 1.0, 1.0, 1.0])
        rpk = relax + exchange
        ramp = expm(rpk * seq.tramp)

        tr_mats: List[np.ndarray] = []
        seg_mats: List[np.ndarray] = []
        for i in range(seq.fa.size):
            b1x = b1 * seq.fa[i] / seq.trf[i]
            w = math.pi * _G0 * b1x * b1x
            rf = np.zeros((5, 5))
            rf[1, 2] = b1x
            rf[2, 1] = -b1x
            rf[3, 3] = -w
            rrd = expm(rpk * (seq.tr - seq.trf[i]))
            ard = expm((rpk + rf) * seq.trf[i])
            tr_mat = spoil @ rrd @ ard
            tr_mats.append(tr_mat)
            seg_mats.append(np.linalg.matrix_power(tr_mat, _spokes_per_group(seq, i)))

        prep_mats: List[np.ndarray] = []
        for name in seq.prep:
            p = seq.prep_pulses[name]
            ew = math.exp(-math.pi * _G0 * b1 * b1 * p.int_b1_sq)
            e2 = math.exp(-r2_f * p.t_trans)
            c = np.zeros((5, 5))
            c[2, 2] = e2 * math.cos(p.fa_eff)
            c[3, 3] = ew
            c[4, 4] = 1.0
            prep_mats.append(c)

        n = seq.size()
        x = np.eye(5)
        for i in range(n):
            for _ in range(int(seq.groups_per_seg[i])):
                x = ramp @ seg_mats[i] @ ramp @ spoil @ prep_mats[i] @ x
        m_current = solve_steady_state(x)

        sig = np.empty(n)
        for i in range(n):
            groups = int(seq.groups_per_seg[i])
            accumulate = 0.0
            for _ in range(groups):
                m_prepped = ramp @ spoil @ prep_mats[i] @ m_current
                m_avg = geometric_avg(
                    tr_mats[i], seg_mats[i], m_prepped, _spokes_per_group(seq, i)
                )
                accumulate += m_avg[2] * math.sin(b1 * seq.fa[i])
                m_current = ramp @ seg_mats[i] @ m_prepped
            sig[i] = accumulate / groups
        return sig

    def derived(self, varying: Sequence[float]) -> np.ndarray:
        """Bound-pool fraction as a percentage."""
        m0_f, m0_b = _unpack(varying, self.varying_names)[:2]
        return np.array([100.0 * m0_b / (m0_f + m0_b)])