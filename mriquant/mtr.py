"""Magnetisation-transfer ratio style contrasts from multi-volume images."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

import numpy as np

EXTERNAL_REFERENCE = -1


def _weighted_sum(data: np.ndarray, indices: Sequence[int], inverse: bool) -> np.ndarray:
    total = np.zeros(data.shape[:-1])
    count = len(indices)
    for index in indices:
        value = data[..., index]
        total = total + (1.0 / (value * count) if inverse else value / count)
    return total


@dataclass
class MTContrast:
    """A contrast built from added, subtracted and reference volumes."""

    name: str
    add_indices: List[int]
    sub_indices: List[int]
    ref_indices: List[int] = field(default_factory=list)
    scale: float = 1.0
    reverse: bool = False
    inverse: bool = False

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "MTContrast":
        return cls(
            name=str(data["name"]),
            add_indices=[int(i) for i in data["add"]],
            sub_indices=[int(i) for i in data["sub"]],
            ref_indices=[int(i) for i in data.get("ref", [])],
            scale=float(data.get("scale", 1.0)),
            reverse=bool(data.get("reverse", False)),
            inverse=bool(data.get("inverse", False)),
        )

    def to_json(self) -> dict:
        return {
            "name": self.name,
            "add": list(self.add_indices),
            "sub": list(self.sub_indices),
            "ref": list(self.ref_indices),
            "reverse": self.reverse,
        }

    def compute(self, data, reference=None) -> np.ndarray:
        """Percentage contrast; the last axis of ``data`` indexes volumes.

        A reference index of -1 takes the value from ``reference``.
        """
        values = np.asarray(data, dtype=float)
        ref_image = None if reference is None else np.asarray(reference, dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            pos = _weighted_sum(values, self.add_indices, self.inverse)
            neg = _weighted_sum(values, self.sub_indices, self.inverse)
            ref = np.zeros(values.shape[:-1])
            count = len(self.ref_indices)
            for index in self.ref_indices:
                if index == EXTERNAL_REFERENCE:
                    if ref_image is None:
                        raise ValueError(
                            f"contrast {self.name} needs an external reference image"
                        )
                    ref = ref + ref_image / count
                else:
                    ref = ref + values[..., index] / count
            diff = self.scale * (pos - neg)
            value = ref - diff if self.reverse else diff
            result = 100.0 * (ref * value if self.inverse else value / ref)
        return float(result) if result.ndim == 0 else result


def default_contrasts() -> List[MTContrast]:
    """The single contrast used when none are supplied: volume 0 over volume 1."""
    return [MTContrast("MTR", [0], [], [1])]


def contrasts_from_json(doc: Mapping[str, Any]) -> List[MTContrast]:
    return [MTContrast.from_json(c) for c in doc["contrasts"]]


def compute_contrasts(
    contrasts: Sequence[MTContrast],
    volume,
    mask=None,
    reference=None,
) -> List[np.ndarray]:
    """Compute each contrast over ``volume``; voxels outside ``mask`` are zero."""
    values = np.asarray(volume, dtype=float)
    inside = None if mask is None else np.asarray(mask) != 0
    outputs = []
    for contrast in contrasts:
        result = np.asarray(contrast.compute(values, reference), dtype=float)
        if inside is not None:
            result = np.where(inside, result, 0.0)
        outputs.append(result)
    return outputs