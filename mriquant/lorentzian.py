"""Sum-of-Lorentzians model for Z-spectra."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Sequence, Tuple

import numpy as np

MAX_POOLS = 3
_PARAMS_PER_POOL = 3


def _triple(data: Mapping[str, Any], key: str, name: str) -> Tuple[float, float, float]:
    values = list(data[key])
    if len(values) != 3:
        raise ValueError(f"Must specify start, low, high for {key} in {name}")
    start, low, high = (float(v) for v in values)
    return start, low, high


@dataclass(frozen=True)
class LorentzPool:
    """One Lorentzian; each parameter holds (start, low, high)."""

    name: str
    df0: Tuple[float, float, float]
    fwhm: Tuple[float, float, float]
    a: Tuple[float, float, float]
    use_bandwidth: bool = False

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "LorentzPool":
        name = str(data["name"])
        return cls(
            name=name,
            df0=_triple(data, "df0", name),
            fwhm=_triple(data, "fwhm", name),
            a=_triple(data, "A", name),
            use_bandwidth=bool(data.get("use_bandwidth", False)),
        )


@dataclass(frozen=True)
class LorentzModel:
    """Z-spectrum as a reference level minus (or plus) one Lorentzian per pool."""

    sat_f0: np.ndarray
    bandwidth: float
    pools: Tuple[LorentzPool, ...]
    zref: float = 1.0
    additive: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "sat_f0", np.asarray(self.sat_f0, dtype=float).ravel())
        object.__setattr__(self, "pools", tuple(self.pools))
        if not 1 <= len(self.pools) <= MAX_POOLS:
            raise ValueError(
                f"Desired number of pools ({len(self.pools)}) has not been implemented"
            )

    @classmethod
    def from_json(
        cls,
        sat_f0: Sequence[float],
        bandwidth: float,
        pools: Iterable[Mapping[str, Any]],
        zref: float = 1.0,
        additive: bool = False,
    ) -> "LorentzModel":
        return cls(
            sat_f0=np.asarray(sat_f0, dtype=float),
            bandwidth=float(bandwidth),
            pools=tuple(LorentzPool.from_json(p) for p in pools),
            zref=float(zref),
            additive=bool(additive),
        )

    def varying_names(self) -> List[str]:
        return [
            f"{pool.name}{suffix}" for pool in self.pools for suffix in ("_f0", "_fwhm", "_A")
        ]

    def _column(self, which: int) -> np.ndarray:
        return np.array([p[which] for pool in self.pools for p in (pool.df0, pool.fwhm, pool.a)])

    def start(self) -> np.ndarray:
        return self._column(0)

    def bounds_lo(self) -> np.ndarray:
        return self._column(1)

    def bounds_hi(self) -> np.ndarray:
        return self._column(2)

    def signal(self, varying: Sequence[float]) -> np.ndarray:
        """Evaluate the spectrum at ``sat_f0`` for (f0, fwhm, A) of each pool."""
        v = np.asarray(varying, dtype=float).ravel()
        expected = _PARAMS_PER_POOL * len(self.pools)
        if v.size != expected:
            raise ValueError(f"expected {expected} varying parameters, got {v.size}")
        s = np.full(self.sat_f0.shape, self.zref)
        for pool, (df, fwhm, amp) in zip(self.pools, v.reshape(-1, _PARAMS_PER_POOL)):
            if pool.use_bandwidth:
                x = self.sat_f0 - df - self.bandwidth / 2.0
                y = self.sat_f0 - df + self.bandwidth / 2.0
                f = np.maximum(x, 0.0) + np.minimum(y, 0.0)
            else:
                # The offset term is the second fitted parameter in every pool.
                f = self.sat_f0 - df - v[1]
            lorentz = amp / (1.0 + (2.0 * f / fwhm) ** 2)
            s = s + lorentz if self.additive else s - lorentz
        return s