"""
Belief Priors
Initial per-cell probability that an unobserved cell is free.
"""

import logging
import numpy as np
from typing import Dict, Iterable, Tuple, Any, Optional, Union

from gridist.exceptions import InvalidPriorError

logger = logging.getLogger(__name__)

PriorLike = Union[float, np.ndarray]


def validate_prior(prior: np.ndarray) -> np.ndarray:
    """Reject NaN or values outside [0, 1]. Returns the prior as float64."""
    prior = np.asarray(prior, dtype=np.float64)
    if np.any(np.isnan(prior)):
        raise InvalidPriorError("Prior contains NaN")
    if np.any(prior < 0.0) or np.any(prior > 1.0):
        low, high = float(np.min(prior)), float(np.max(prior))
        raise InvalidPriorError(f"Prior must lie in [0, 1], got range [{low}, {high}]")
    return prior


def uniform_prior(shape: Tuple[int, int], p_free: float) -> np.ndarray:
    if not 0.0 <= p_free <= 1.0:
        raise InvalidPriorError(f"Prior must lie in [0, 1], got {p_free}")
    return np.full(shape, float(p_free), dtype=np.float64)


def array_prior(values: np.ndarray, shape: Optional[Tuple[int, int]] = None) -> np.ndarray:
    prior = validate_prior(values)
    if shape is not None and prior.shape != tuple(shape):
        raise InvalidPriorError(f"Prior shape {prior.shape} does not match grid {tuple(shape)}")
    return prior.copy()


def density_prior(training_grids: Iterable[np.ndarray],
                  shape: Tuple[int, int],
                  per_cell: bool = False) -> np.ndarray:
    """
    Prior from obstacle statistics over a corpus of similar maps.

    Args:
        training_grids: Boolean arrays, True where blocked
        shape: Target grid shape
        per_cell: Use the per-cell free frequency (all grids must share ``shape``)
            instead of the corpus-wide free fraction

    Returns:
        Prior array of ``shape``
    """
    grids = [np.asarray(g, dtype=bool) for g in training_grids]
    if not grids:
        raise InvalidPriorError("density_prior needs at least one training grid")

    if per_cell:
        for g in grids:
            if g.shape != tuple(shape):
                raise InvalidPriorError(f"Training grid shape {g.shape} does not match {tuple(shape)}")
        prior = 1.0 - np.mean(np.stack(grids).astype(np.float64), axis=0)
        logger.info(f"Per-cell density prior from {len(grids)} grids, "
                    f"mean p_free={float(prior.mean()):.3f}")
        return validate_prior(prior)

    free = sum(int(np.sum(~g)) for g in grids)
    total = sum(g.size for g in grids)
    p_free = free / total if total else 1.0
    logger.info(f"Density prior from {len(grids)} grids: p_free={p_free:.3f}")
    return uniform_prior(shape, p_free)


def build_prior(config: Dict[str, Any], shape: Tuple[int, int],
                prior: Optional[PriorLike] = None) -> np.ndarray:
    """
    Resolve the prior for a grid of ``shape``.

    An explicit ``prior`` (scalar or array) wins over the config. Otherwise
    ``config['prior']`` selects 'uniform' with ``p_free``.
    """
    if prior is not None:
        if np.isscalar(prior):
            return uniform_prior(shape, float(prior))
        return array_prior(prior, shape)

    prior_config = config.get('prior', {})
    prior_type = prior_config.get('type', 'uniform')

    if prior_type == 'uniform':
        return uniform_prior(shape, float(prior_config.get('p_free', 0.5)))

    raise InvalidPriorError(f"Unknown prior type in config: {prior_type}")
