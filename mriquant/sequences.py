"""Acquisition sequence descriptions read from JSON-style dictionaries."""

from __future__ import annotations

import math
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping

import numpy as np

from .pulses import MTPulse, PrepPulse, _array_from_json

_DEG = math.pi / 180.0


class SequenceError(ValueError):
    """Raised when a sequence description is missing fields or inconsistent."""


@contextmanager
def _reading(name: str) -> Iterator[None]:
    try:
        yield
    except KeyError as err:
        raise SequenceError(f"{name} sequence is missing field {err}") from err
    except (TypeError, ValueError) as err:
        if isinstance(err, SequenceError):
            raise
        raise SequenceError(f"{name} sequence is invalid: {err}") from err


@dataclass(eq=False)
class MTSequence:
    """MT-prepared RUFIS sequence; flip angles are stored in radians."""

    tr: float
    trf: float
    tramp: float
    tspoil: float
    sps: int
    mt_pulse: MTPulse
    mt_pulsewidth: float
    rufis_fa: np.ndarray
    mt_fa: np.ndarray
    mt_offsets: np.ndarray

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "MTSequence":
        with _reading("MT"):
            seq = cls(
                tr=float(data["TR"]),
                trf=float(data["Trf"]),
                tramp=float(data["Tramp"]),
                tspoil=float(data["Tspoil"]),
                sps=int(data["SPS"]),
                mt_pulse=MTPulse.from_json(data["MT_pulse"]),
                mt_pulsewidth=float(data["MT_pulsewidth"]),
                rufis_fa=_array_from_json(data, "RUFIS_FA", _DEG),
                mt_fa=_array_from_json(data, "MT_FA", _DEG),
                mt_offsets=_array_from_json(data, "MT_offsets"),
            )
        if seq.rufis_fa.size != seq.mt_fa.size:
            raise SequenceError(
                f"Number of RUFIS FAs {seq.rufis_fa.size} does not match "
                f"number of MT FAs {seq.mt_fa.size}"
            )
        return seq

    def to_json(self) -> dict:
        return {
            "TR": self.tr,
            "Trf": self.trf,
            "Tramp": self.tramp,
            "Tspoil": self.tspoil,
            "SPS": self.sps,
            "RUFIS_FA": (self.rufis_fa / _DEG).tolist(),
            "MT_FA": (self.mt_fa / _DEG).tolist(),
            "MT_offsets": self.mt_offsets.tolist(),
            "MT_pulsewidth": self.mt_pulsewidth,
            "MT_pulse": self.mt_pulse.to_json(),
        }

    def size(self) -> int:
        return int(self.rufis_fa.size)


@dataclass(eq=False)
class SSSequence:
    """Segmented steady-state sequence with one preparation per segment."""

    tr: float
    trf: float
    tramp: float
    fa: np.ndarray
    spokes_per_seg: int
    prep_p1: float
    prep_p2: float
    prep_trf: float
    prep_fa: np.ndarray
    prep_df: np.ndarray

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "SSSequence":
        with _reading("SS"):
            fa = _array_from_json(data, "FA", _DEG)
            return cls(
                tr=float(data["TR"]),
                trf=float(data["Trf"]),
                tramp=float(data["Tramp"]),
                fa=fa,
                spokes_per_seg=int(data["spokes_per_seg"]),
                prep_p1=float(data["prep_p1"]),
                prep_p2=float(data["prep_p2"]),
                prep_trf=float(data["prep_Trf"]),
                prep_fa=_array_from_json(data, "prep_FA", _DEG, fa.size),
                prep_df=_array_from_json(data, "prep_df", 1.0, fa.size),
            )

    def size(self) -> int:
        return int(self.fa.size)


@dataclass(eq=False)
class RUFISSequence:
    """Transient RUFIS sequence with named preparation pulses per segment."""

    tr: float
    tramp: float
    spokes_per_seg: int
    fa: np.ndarray
    trf: np.ndarray
    groups_per_seg: np.ndarray
    prep_pulses: Dict[str, PrepPulse] = field(default_factory=dict)
    prep: List[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "RUFISSequence":
        with _reading("RUFIS"):
            seq = cls(
                tr=float(data["TR"]),
                tramp=float(data["Tramp"]),
                spokes_per_seg=int(data["spokes_per_seg"]),
                fa=_array_from_json(data, "FA", _DEG),
                trf=_array_from_json(data, "Trf", 1.0e-6),
                groups_per_seg=_array_from_json(data, "groups_per_seg").astype(int),
                prep_pulses={
                    name: PrepPulse.from_json(p) for name, p in data["prep_pulses"].items()
                },
                prep=[str(name) for name in data["prep"]],
            )
        if seq.fa.size != len(seq.prep):
            raise SequenceError(
                f"Number preps {len(seq.prep)} does not match number of flip-angles {seq.fa.size}"
            )
        return seq

    def size(self) -> int:
        return len(self.prep)