"""Stochastic region-contraction global optimiser."""

from __future__ import annotations

import enum
import logging
from typing import Callable, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

_MAX_TRIES = 100


def index_partial_sort(x: Sequence[float], n: int) -> np.ndarray:
    """Return the indices of the ``n`` smallest entries of ``x``, smallest first."""
    values = np.asarray(x, dtype=float)
    if n > values.size:
        raise ValueError(f"cannot select {n} indices from {values.size} values")
    return np.argsort(values, kind="stable")[:n]


class RCStatus(enum.Enum):
    """Outcome of a region-contraction run."""

    NOT_STARTED = -1
    CONVERGED = 0
    NO_IMPROVEMENT = 1
    ITERATION_LIMIT = 2
    ERROR_INVALID = 3
    ERROR_RESIDUAL = 4

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    def __str__(self) -> str:
        return self.description


_DESCRIPTIONS = {
    RCStatus.NOT_STARTED: "Not Started",
    RCStatus.CONVERGED: "Converged",
    RCStatus.NO_IMPROVEMENT: "No Improvement to best residual",
    RCStatus.ITERATION_LIMIT: "Reached iteration limit",
    RCStatus.ERROR_INVALID: "Could not generate valid sample",
    RCStatus.ERROR_RESIDUAL: "Infinite residual found",
}


class RegionContractionError(RuntimeError):
    """Raised when optimisation fails; carries the status and fallback parameters."""

    def __init__(self, status: RCStatus, params: np.ndarray, detail: str = "") -> None:
        message = str(status) if not detail else f"{status}: {detail}"
        super().__init__(message)
        self.status = status
        self.params = params


def _accept_all(_sample: np.ndarray) -> bool:
    return True


class RegionContraction:
    """Minimise ``objective`` by repeatedly sampling and shrinking a bounding box."""

    def __init__(
        self,
        objective: Callable[[np.ndarray], float],
        lo_bounds: Sequence[float],
        hi_bounds: Sequence[float],
        thresholds: Sequence[float],
        n_samples: int = 5000,
        n_retain: int = 50,
        max_contractions: int = 10,
        expand: float = 0.0,
        gaussian: bool = False,
        constraint: Optional[Callable[[np.ndarray], bool]] = None,
        seed: Optional[int] = None,
    ) -> None:
        lo = np.asarray(lo_bounds, dtype=float).ravel()
        hi = np.asarray(hi_bounds, dtype=float).ravel()
        thresh = np.asarray(thresholds, dtype=float).ravel()
        if lo.shape != hi.shape:
            raise ValueError("lower and upper bounds must have the same length")
        if thresh.shape != lo.shape:
            raise ValueError("thresholds must have one entry per parameter")
        if not (np.all(thresh >= 0.0) and np.all(thresh <= 1.0)):
            raise ValueError("thresholds must lie within [0, 1]")
        if n_retain > n_samples:
            raise ValueError("cannot retain more samples than are drawn")
        self.objective = objective
        self.constraint = constraint if constraint is not None else _accept_all
        self.start_bounds = np.column_stack((lo, hi))
        self.current_bounds = self.start_bounds.copy()
        self.thresholds = thresh
        self.n_samples = n_samples
        self.n_retain = n_retain
        self.max_contractions = max_contractions
        self.expand = expand
        self.gaussian = gaussian
        self.contractions = 0
        self.status = RCStatus.NOT_STARTED
        self.sos = float("nan")
        self._rng = np.random.default_rng(seed)

    @property
    def n_inputs(self) -> int:
        return self.start_bounds.shape[0]

    def start_width(self) -> np.ndarray:
        return self.start_bounds[:, 1] - self.start_bounds[:, 0]

    def width(self) -> np.ndarray:
        return self.current_bounds[:, 1] - self.current_bounds[:, 0]

    def midpoint(self) -> np.ndarray:
        return self.current_bounds.sum(axis=1) / 2.0

    def _fail(self, status: RCStatus, params: np.ndarray, detail: str) -> RegionContractionError:
        self.status = status
        return RegionContractionError(status, params, detail)

    def _draw(self, mu: np.ndarray, sigma: np.ndarray) -> np.ndarray:
        lo = self.current_bounds[:, 0]
        hi = self.current_bounds[:, 1]
        if not self.gaussian or self.contractions == 0:
            return self._rng.random(self.n_inputs) * self.width() + lo
        sample = np.empty(self.n_inputs)
        for p, (m, s) in enumerate(zip(mu, sigma)):
            if np.isfinite(s):
                while True:
                    value = self._rng.normal(m, s)
                    if lo[p] <= value <= hi[p]:
                        break
                sample[p] = value
            else:
                sample[p] = m
        return sample

    def _valid_sample(self, mu: np.ndarray, sigma: np.ndarray) -> np.ndarray:
        tries = 0
        while True:
            sample = self._draw(mu, sigma)
            tries += 1
            if tries > _MAX_TRIES:
                raise self._fail(
                    RCStatus.ERROR_INVALID,
                    np.zeros(self.n_inputs),
                    f"cannot fulfil sample constraints after {tries} attempts, "
                    f"last attempt was {sample}",
                )
            if self.constraint(sample):
                return sample

    def optimise(self) -> np.ndarray:
        """Run the optimisation and return the best parameters found.

        Raises RegionContractionError if the bounds are invalid, no sample
        satisfies the constraint, or the objective is not finite.
        """
        n_p = self.n_inputs
        self.current_bounds = self.start_bounds.copy()
        sb = self.start_bounds
        if np.isnan(sb).any() or (sb >= np.inf).any() or (sb[:, 1] < sb[:, 0]).any():
            raise self._fail(
                RCStatus.ERROR_INVALID,
                np.zeros(n_p),
                f"starting boundaries do not make sense: {sb.T.tolist()}",
            )

        logger.debug("Start region contraction, bounds: %s", sb.T.tolist())
        samples = np.empty((n_p, self.n_samples))
        residuals = np.empty(self.n_samples)
        retained = np.full((n_p, self.n_retain), np.nan)
        retained_res = np.full(self.n_retain, np.nan)
        mu = np.zeros(n_p)
        sigma = np.zeros(n_p)

        self.status = RCStatus.ITERATION_LIMIT
        self.contractions = 0
        while self.contractions < self.max_contractions:
            for s in range(self.n_samples):
                sample = self._valid_sample(mu, sigma)
                residual = float(self.objective(sample))
                if not np.isfinite(residual):
                    raise self._fail(
                        RCStatus.ERROR_RESIDUAL,
                        retained[:, 0].copy(),
                        f"non-finite residual for parameters {sample}",
                    )
                residuals[s] = residual
                samples[:, s] = sample

            indices = index_partial_sort(residuals, self.n_retain)
            previous_best = retained[:, 0].copy()
            retained = samples[:, indices]
            retained_res = residuals[indices]
            self.current_bounds[:, 0] = retained.min(axis=1)
            self.current_bounds[:, 1] = retained.max(axis=1)
            if self.gaussian:
                mu = retained.mean(axis=1)
                with np.errstate(divide="ignore", invalid="ignore"):
                    sigma = np.sqrt(
                        ((retained - mu[:, None]) ** 2).sum(axis=1) / (n_p - 1)
                    )
            logger.debug(
                "Contraction %d: retained best %g worst %g, width fraction %s",
                self.contractions,
                retained_res.min(),
                retained_res.max(),
                (self.width() / self.start_width()).tolist(),
            )

            if np.all(self.width() <= self.thresholds * self.start_width()):
                self.status = RCStatus.CONVERGED
                self.contractions += 1
                break
            if np.array_equal(previous_best, retained[:, 0]):
                self.status = RCStatus.NO_IMPROVEMENT
                self.contractions += 1
                break

            if self.expand != 0:
                w = self.width()
                self.current_bounds[:, 0] = np.maximum(
                    self.current_bounds[:, 0] - w * self.expand, sb[:, 0]
                )
                self.current_bounds[:, 1] = np.minimum(
                    self.current_bounds[:, 1] + w * self.expand, sb[:, 1]
                )
            self.contractions += 1

        params = mu.copy() if self.gaussian else retained[:, 0].copy()
        self.sos = float(retained_res[0])
        logger.debug("Finished, contractions = %d", self.contractions)
        return params