"""RF pulse descriptions read from and written to JSON-style dictionaries."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import numpy as np


def _array_from_json(
    data: Mapping[str, Any], key: str, scale: float = 1.0, size: Optional[int] = None
) -> np.ndarray:
    """Read ``data[key]`` as a 1-D float array multiplied by ``scale``.

    When ``size`` is given a single value is repeated to that length, and any
    other length that differs from ``size`` is an error.
    """
    arr = np.atleast_1d(np.asarray(data[key], dtype=float))
    if arr.ndim != 1:
        raise ValueError(f"'{key}' must be a number or a flat list of numbers")
    if size is not None and arr.size != size:
        if arr.size == 1:
            arr = np.full(size, arr[0])
        else:
            raise ValueError(f"'{key}' has {arr.size} entries, expected {size}")
    return arr * scale


def _check_b1_lengths(b1x: np.ndarray, b1y: np.ndarray) -> None:
    if b1x.size != b1y.size:
        raise ValueError(f"B1x and B1y array lengths did not match {b1x.size} vs {b1y.size}")


@dataclass(eq=False)
class RFPulse:
    """An arbitrary RF waveform sampled with per-sample time steps (microseconds)."""

    b1x: np.ndarray
    b1y: np.ndarray
    timestep: np.ndarray

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "RFPulse":
        b1x = _array_from_json(data, "B1x")
        b1y = _array_from_json(data, "B1y")
        timestep = _array_from_json(data, "timestep")
        _check_b1_lengths(b1x, b1y)
        return cls(b1x, b1y, timestep)

    def to_json(self) -> dict:
        return {
            "B1x": self.b1x.tolist(),
            "B1y": self.b1y.tolist(),
            "timestep": self.timestep.tolist(),
        }


@dataclass(eq=False)
class MTPulse:
    """An MT saturation pulse; ``fa`` is stored in radians."""

    b1x: np.ndarray
    b1y: np.ndarray
    fa: float
    width: float

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "MTPulse":
        b1x = _array_from_json(data, "B1x")
        b1y = _array_from_json(data, "B1y")
        fa = float(data["FA"]) * math.pi / 180.0
        width = float(data["width"])
        _check_b1_lengths(b1x, b1y)
        return cls(b1x, b1y, fa, width)

    def to_json(self) -> dict:
        return {
            "B1x": self.b1x.tolist(),
            "B1y": self.b1y.tolist(),
            "FA": self.fa * 180.0 / math.pi,
            "width": self.width,
        }


@dataclass
class PrepPulse:
    """Effective description of a preparation pulse; ``fa_eff`` is in radians."""

    fa_eff: float
    int_b1_sq: float
    t_long: float
    t_trans: float

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "PrepPulse":
        return cls(
            fa_eff=float(data["FAeff"]) * math.pi / 180.0,
            int_b1_sq=float(data["int_b1_sq"]),
            t_long=float(data["T_long"]),
            t_trans=float(data["T_trans"]),
        )

    def to_json(self) -> dict:
        return {
            "FAeff": self.fa_eff * 180.0 / math.pi,
            "int_b1_sq": self.int_b1_sq,
            "T_long": self.t_long,
            "T_trans": self.t_trans,
        }