"""Statistical groove baseline and Mahalanobis distance from it."""

import logging
from dataclasses import dataclass

import numpy as np

from fillscan.analysis.fill_config import FillConfig
from fillscan.analysis.models import GROOVE_FEATURES, AnalysisWindow

logger = logging.getLogger(__name__)

MIN_SAMPLES = 2
# Variance floor added to the covariance diagonal (a standard deviation of 0.1)
DEFAULT_REGULARIZATION = 1e-2
# Covariances worse conditioned than this are treated as singular
MAX_CONDITION = 1e8
# Windows above this multiple of the mean density are left out of training
STABLE_DENSITY_FACTOR = 1.5
# Samples needed for full model confidence
CONFIDENT_SAMPLES = 20


@dataclass
class GrooveModel:
    """Mean and covariance of groove feature vectors.

    The inverse covariance is computed once when the model is built.
    """
    mean: np.ndarray
    covariance: np.ndarray
    covariance_inverse: np.ndarray | None
    sample_count: int
    is_valid: bool

    @classmethod
    def invalid(cls, n_features: int = len(GROOVE_FEATURES), sample_count: int = 0) -> "GrooveModel":
        return cls(
            mean=np.zeros(n_features),
            covariance=np.eye(n_features),
            covariance_inverse=None,
            sample_count=sample_count,
            is_valid=False,
        )


def build_groove_model(vectors: np.ndarray, regularization: float = DEFAULT_REGULARIZATION) -> GrooveModel:
    """Fit a groove model on an (n_samples, n_features) array."""
    vectors = np.asarray(vectors, dtype=float)
    if vectors.ndim != 2 or vectors.shape[0] < MIN_SAMPLES:
        n_features = vectors.shape[1] if vectors.ndim == 2 else len(GROOVE_FEATURES)
        return GrooveModel.invalid(n_features, sample_count=len(vectors))

    n, n_features = vectors.shape
    mean = vectors.mean(axis=0)
    covariance = np.cov(vectors, rowvar=False, ddof=1).reshape(n_features, n_features)
    covariance = covariance + regularization * np.eye(n_features)

    condition = np.linalg.cond(covariance)
    if not np.isfinite(condition) or condition > MAX_CONDITION:
        logger.warning(
            f"Groove covariance is singular or ill-conditioned (condition {condition:.3g}, {n} samples), "
            f"distances disabled"
        )
        return GrooveModel(mean, covariance, None, n, is_valid=False)

    try:
        inverse = np.linalg.inv(covariance)
    except np.linalg.LinAlgError:
        logger.warning(f"Groove covariance is singular ({n} samples), distances disabled")
        return GrooveModel(mean, covariance, None, n, is_valid=False)

    if not np.all(np.isfinite(inverse)):
        logger.warning(f"Groove covariance inverse is not finite ({n} samples), distances disabled")
        return GrooveModel(mean, covariance, None, n, is_valid=False)

    return GrooveModel(mean, covariance, inverse, n, is_valid=True)


def groove_distance(vector: np.ndarray, model: GrooveModel) -> float:
    """Mahalanobis distance of *vector* from the groove; 0 for an invalid model."""
    if not model.is_valid or model.covariance_inverse is None:
        return 0.0
    diff = np.asarray(vector, dtype=float) - model.mean
    d2 = float(diff @ model.covariance_inverse @ diff)
    # Rounding can push a zero distance slightly negative
    return float(np.sqrt(max(d2, 0.0)))


def model_confidence(model: GrooveModel) -> float:
    if not model.is_valid:
        return 0.0
    return min(1.0, model.sample_count / CONFIDENT_SAMPLES)


def validate_groove_model(model: GrooveModel) -> list[str]:
    """Problems with a model's shape or contents (empty list if none)."""
    problems = []
    n = len(model.mean)
    if model.covariance.shape != (n, n):
        problems.append(f"covariance shape {model.covariance.shape} does not match {n} features")
    elif not np.allclose(model.covariance, model.covariance.T):
        problems.append("covariance is not symmetric")
    if not np.all(np.isfinite(model.mean)):
        problems.append("mean has non-finite values")
    if model.is_valid and model.covariance_inverse is None:
        problems.append("valid model without an inverse covariance")
    if model.is_valid and model.sample_count < MIN_SAMPLES:
        problems.append(f"valid model with only {model.sample_count} samples")
    return problems


def identify_groove_windows(windows: list[AnalysisWindow], config: FillConfig) -> list[AnalysisWindow]:
    """Windows that look like steady groove, for training the model.

    Falls back to every window when fewer than MIN_SAMPLES pass the filter.
    """
    if not windows:
        return []
    thresholds = config.thresholds
    mean_density = float(np.mean([w.features.note_density for w in windows]))

    stable = [
        w for w in windows
        if not w.is_candidate
        and w.features.note_density <= STABLE_DENSITY_FACTOR * mean_density
        and w.features.tom_ratio_jump <= thresholds.tom_jump
        and w.features.density_z <= thresholds.density_z
    ]
    if len(stable) < MIN_SAMPLES:
        logger.debug(f"Only {len(stable)} stable windows, training groove model on all {len(windows)}")
        return windows
    return stable


def update_groove_distances(windows: list[AnalysisWindow], config: FillConfig) -> GrooveModel:
    """Fit one model for the song and write ``groove_dist`` on every window."""
    training = identify_groove_windows(windows, config)
    if not training:
        return GrooveModel.invalid()

    model = build_groove_model(np.stack([w.features.groove_vector() for w in training]))
    for window in windows:
        window.features.groove_dist = groove_distance(window.features.groove_vector(), model)

    logger.debug(f"Groove model: {model.sample_count} samples, valid={model.is_valid}")
    return model
