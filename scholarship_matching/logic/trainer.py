"""
Training Engine

Mini-batch gradient-descent logistic regression with class weighting, L2
regularization, learning-rate decay, early stopping and k-fold cross-validation.

Pipeline flow for one training run:
1. Feature extraction for terminal (approved/rejected) outcomes
2. Sample-count gate per scope (InsufficientDataError below the minimum)
3. K-fold cross-validation, one logistic model per fold
4. Element-wise average of fold weights -> final model
5. Persist through the model registry, which activates it for its scope
"""

import logging
import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, NamedTuple, Optional, Tuple

import numpy as np

from .config import TrainingConfig, load_training_config
from .constants import (
    FEATURE_NAMES,
    DECISION_THRESHOLD,
    WEIGHT_CLIP,
    BIAS_CLIP,
    Z_CLIP,
    LOSS_EPSILON,
    HISTORY_INTERVAL_EPOCHS,
)
from .contracts import (
    ApplicationOutcome,
    ModelScope,
    ScholarshipDataCount,
    ScholarshipTrainingResult,
    TrainedModelRecord,
    TrainingDataStats,
    TrainingHistoryPoint,
    TrainingMetrics,
    TrainingStats,
)
from .exceptions import InsufficientDataError
from .features import FeatureExtractor
from .seeded_random import SeededRandom
from .validation import create_k_folds, average_metrics, average_weights, feature_importance

logger = logging.getLogger(__name__)


# =============================================================================
# LOGISTIC REGRESSION
# =============================================================================

def sigmoid(z):
    """Logistic function with z clipped to +/-500 before exponentiation."""
    return 1.0 / (1.0 + np.exp(-np.clip(z, -Z_CLIP, Z_CLIP)))


def predict_proba(X: np.ndarray, weights: np.ndarray, bias: float) -> np.ndarray:
    return sigmoid(X @ weights + bias)


class FitResult(NamedTuple):
    weights: np.ndarray
    bias: float
    best_loss: float
    epochs_run: int
    history: List[TrainingHistoryPoint]


def class_weights(y: np.ndarray) -> Tuple[float, float]:
    """Inverse-frequency weights (positive, negative): total / (2 * count)."""
    total = len(y)
    positives = int(y.sum())
    negatives = total - positives
    return total / (2 * max(1, positives)), total / (2 * max(1, negatives))


def train_logistic_regression(
    X: np.ndarray,
    y: np.ndarray,
    config: TrainingConfig,
    rng: SeededRandom,
) -> FitResult:
    """
    Fit one logistic model on (X, y).

    Samples are reshuffled with `rng` every epoch. Weights and bias are clipped
    after every update. The lowest-loss snapshot is returned.
    """
    n_samples, n_features = X.shape
    positive_weight, negative_weight = class_weights(y)
    sample_weights = np.where(y == 1, positive_weight, negative_weight)

    weights = np.full(n_features, config.initial_weight, dtype=float)
    bias = 0.0
    batch_size = max(1, min(config.batch_size, n_samples // 2))

    best_weights = weights.copy()
    best_bias = bias
    best_loss = float("inf")
    stale_epochs = 0
    history: List[TrainingHistoryPoint] = []
    epoch = 0

    for epoch in range(config.epochs):
        learning_rate = config.learning_rate / (1 + config.learning_rate_decay * epoch)
        order = rng.permutation(n_samples)
        epoch_loss = 0.0

        for start in range(0, n_samples, batch_size):
            idx = order[start:start + batch_size]
            xb = X[idx]
            yb = y[idx]
            cw = sample_weights[idx]

            p = sigmoid(xb @ weights + bias)
            error = (p - yb) * cw
            grad_w = xb.T @ error / len(idx) + config.regularization * weights
            grad_b = error.sum() / len(idx)

            weights = np.clip(weights - learning_rate * grad_w, -WEIGHT_CLIP, WEIGHT_CLIP)
            bias = float(np.clip(bias - learning_rate * grad_b, -BIAS_CLIP, BIAS_CLIP))

            epoch_loss += float(np.sum(
                -cw * (yb * np.log(p + LOSS_EPSILON) + (1 - yb) * np.log(1 - p + LOSS_EPSILON))
            ))

        avg_loss = epoch_loss / n_samples

        if avg_loss < best_loss:
            best_loss = avg_loss
            best_weights = weights.copy()
            best_bias = bias
            stale_epochs = 0
        else:
            stale_epochs += 1

        if epoch % HISTORY_INTERVAL_EPOCHS == 0:
            accuracy = float(np.mean((predict_proba(X, weights, bias) >= DECISION_THRESHOLD) == (y == 1)))
            history.append(TrainingHistoryPoint(epoch=epoch, loss=avg_loss, accuracy=accuracy))

        if stale_epochs >= config.early_stopping_patience:
            logger.debug(f"Early stopping at epoch {epoch} (best loss {best_loss:.6f})")
            break
        if avg_loss < config.convergence_threshold:
            logger.debug(f"Converged at epoch {epoch} (loss {avg_loss:.6f})")
            break

    return FitResult(best_weights, best_bias, best_loss, epoch + 1, history)


def evaluate_model(X: np.ndarray, y: np.ndarray, weights: np.ndarray, bias: float) -> TrainingMetrics:
    """Confusion counts and derived metrics at the 0.5 decision threshold."""
    if len(y) == 0:
        return TrainingMetrics()

    predicted = predict_proba(X, weights, bias) >= DECISION_THRESHOLD
    actual = y == 1

    tp = int(np.sum(predicted & actual))
    tn = int(np.sum(~predicted & ~actual))
    fp = int(np.sum(predicted & ~actual))
    fn = int(np.sum(~predicted & actual))

    precision = tp / (tp + fp) if (tp + fp) > 0 else 0.0
    recall = tp / (tp + fn) if (tp + fn) > 0 else 0.0
    f1 = 2 * precision * recall / (precision + recall) if (precision + recall) > 0 else 0.0

    return TrainingMetrics(
        accuracy=(tp + tn) / len(y),
        precision=precision,
        recall=recall,
        f1_score=f1,
        true_positives=tp,
        true_negatives=tn,
        false_positives=fp,
        false_negatives=fn,
    )


class CrossValidationResult(NamedTuple):
    weights: np.ndarray
    bias: float
    metrics: TrainingMetrics
    fold_epochs: List[int]
    history: List[TrainingHistoryPoint]


def cross_validate(X: np.ndarray, y: np.ndarray, config: TrainingConfig) -> CrossValidationResult:
    """
    K-fold cross-validation with a fresh seeded generator for the whole run.

    Returns the element-wise averaged model and the averaged fold metrics.
    """
    rng = SeededRandom(config.random_seed)
    folds = create_k_folds(len(y), config.k_folds, rng)

    fold_models = []
    fold_metrics = []
    fold_epochs = []
    history: List[TrainingHistoryPoint] = []

    for fold_number, (train_idx, test_idx) in enumerate(folds, start=1):
        fit = train_logistic_regression(X[train_idx], y[train_idx], config, rng)
        metrics = evaluate_model(X[test_idx], y[test_idx], fit.weights, fit.bias)
        logger.info(
            f"📊 Fold {fold_number}/{len(folds)}: accuracy={metrics.accuracy:.3f} "
            f"f1={metrics.f1_score:.3f} epochs={fit.epochs_run}"
        )
        fold_models.append((fit.weights, fit.bias))
        fold_metrics.append(metrics)
        fold_epochs.append(fit.epochs_run)
        if fold_number == 1:
            history = fit.history

    weights, bias = average_weights(fold_models)
    return CrossValidationResult(weights, bias, average_metrics(fold_metrics), fold_epochs, history)


# =============================================================================
# TRAINER
# =============================================================================

class ModelTrainer:
    """
    Trains global and scholarship-specific models and hands them to the registry.

    Runs on the same scope are serialized by a per-scope lock; runs on different
    scopes may proceed concurrently.

    Args:
        registry: ModelRegistry used to persist and activate trained models
        extractor: Feature extractor (defaults to a new FeatureExtractor)
        config: Training hyperparameters (defaults to environment configuration)
    """

    def __init__(self, registry, extractor: Optional[FeatureExtractor] = None, config: Optional[TrainingConfig] = None):
        self.registry = registry
        self.extractor = extractor or FeatureExtractor()
        self.config = config or load_training_config()
        self._scope_locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _scope_lock(self, scope: ModelScope) -> threading.Lock:
        with self._locks_guard:
            return self._scope_locks.setdefault(scope.key, threading.Lock())

    def train_global_model(
        self,
        outcomes: List[ApplicationOutcome],
        trained_by: Optional[str] = None,
    ) -> TrainedModelRecord:
        """
        Train on every terminal outcome across all scholarships.

        Raises:
            InsufficientDataError: fewer than min_samples_global terminal outcomes
        """
        terminal = [o for o in outcomes if o.is_terminal]
        logger.info(f"🚀 Training global model on {len(terminal)} terminal applications")
        if len(terminal) < self.config.min_samples_global:
            raise InsufficientDataError(self.config.min_samples_global, len(terminal))

        return self._train_scope(
            ModelScope.global_scope(),
            terminal,
            name="Global Scholarship Model",
            trained_by=trained_by,
        )

    def train_scholarship_model(
        self,
        scholarship_id: str,
        outcomes: List[ApplicationOutcome],
        trained_by: Optional[str] = None,
    ) -> TrainedModelRecord:
        """
        Train on terminal outcomes of one scholarship only.

        Raises:
            InsufficientDataError: fewer than min_samples_per_scholarship terminal outcomes
        """
        terminal = [
            o for o in outcomes
            if o.is_terminal and o.scholarship.scholarship_id == scholarship_id
        ]
        logger.info(f"🚀 Training model for scholarship {scholarship_id} on {len(terminal)} terminal applications")
        if len(terminal) < self.config.min_samples_per_scholarship:
            raise InsufficientDataError(self.config.min_samples_per_scholarship, len(terminal), scholarship_id)

        scholarship_name = terminal[0].scholarship.name or scholarship_id
        return self._train_scope(
            ModelScope.for_scholarship(scholarship_id),
            terminal,
            name=f"{scholarship_name} Model",
            trained_by=trained_by,
        )

    def train_all_scholarship_models(
        self,
        outcomes: List[ApplicationOutcome],
        trained_by: Optional[str] = None,
    ) -> List[ScholarshipTrainingResult]:
        """
        Train a specific model for every scholarship present in `outcomes`.

        Scholarships below the sample minimum are reported as unsuccessful
        instead of aborting the batch.
        """
        grouped: Dict[str, List[ApplicationOutcome]] = defaultdict(list)
        names: Dict[str, str] = {}
        for outcome in outcomes:
            sid = outcome.scholarship.scholarship_id
            names.setdefault(sid, outcome.scholarship.name)
            if outcome.is_terminal:
                grouped[sid].append(outcome)

        results = []
        for sid in names:
            samples = grouped.get(sid, [])
            entry = ScholarshipTrainingResult(
                scholarship_id=sid,
                scholarship_name=names[sid],
                sample_count=len(samples),
            )
            if len(samples) < self.config.min_samples_per_scholarship:
                entry.error = f"Insufficient data ({len(samples)}/{self.config.min_samples_per_scholarship})"
                logger.info(f"⏭️ Skipping scholarship {sid}: {entry.error}")
                results.append(entry)
                continue

            record = self.train_scholarship_model(sid, samples, trained_by=trained_by)
            entry.success = True
            entry.model_id = record.model_id
            entry.accuracy = record.metrics.accuracy
            results.append(entry)

        trained = sum(1 for r in results if r.success)
        logger.info(f"✅ Trained {trained}/{len(results)} scholarship models")
        return results

    def get_training_stats(self, outcomes: List[ApplicationOutcome]) -> TrainingDataStats:
        """Labeled-data availability overall and per scholarship."""
        per_scholarship: Dict[str, ScholarshipDataCount] = {}
        approved = rejected = 0

        for outcome in outcomes:
            sid = outcome.scholarship.scholarship_id
            entry = per_scholarship.setdefault(
                sid,
                ScholarshipDataCount(scholarship_id=sid, scholarship_name=outcome.scholarship.name),
            )
            if not outcome.is_terminal:
                continue
            if outcome.label == 1:
                approved += 1
                entry.approved += 1
            else:
                rejected += 1
                entry.rejected += 1
            entry.total += 1

        for entry in per_scholarship.values():
            entry.ready_for_training = entry.total >= self.config.min_samples_per_scholarship

        return TrainingDataStats(
            total_applications=len(outcomes),
            approved_count=approved,
            rejected_count=rejected,
            terminal_count=approved + rejected,
            ready_for_global_training=(approved + rejected) >= self.config.min_samples_global,
            min_samples_global=self.config.min_samples_global,
            min_samples_per_scholarship=self.config.min_samples_per_scholarship,
            scholarships=list(per_scholarship.values()),
        )

    def _train_scope(
        self,
        scope: ModelScope,
        terminal: List[ApplicationOutcome],
        name: str,
        trained_by: Optional[str],
    ) -> TrainedModelRecord:
        X, y = self.extractor.build_training_set(terminal)

        with self._scope_lock(scope):
            result = cross_validate(X, y, self.config)

            approved = int(y.sum())
            record = TrainedModelRecord(
                name=name,
                version=datetime.now(timezone.utc).strftime("%Y.%m.%d.%H%M%S"),
                scope=scope,
                weights={feature: float(w) for feature, w in zip(FEATURE_NAMES, result.weights)},
                bias=result.bias,
                metrics=result.metrics,
                training_stats=TrainingStats(
                    total_samples=len(y),
                    approved_count=approved,
                    rejected_count=len(y) - approved,
                    k_folds=len(result.fold_epochs),
                    fold_epochs=result.fold_epochs,
                    history=result.history,
                ),
                training_config=self.config.model_dump(),
                feature_importance=feature_importance(result.weights),
                trained_by=trained_by,
                notes=f"Trained on {len(y)} samples with {len(result.fold_epochs)}-fold cross-validation",
            )
            stored = self.registry.activate(record)

        logger.info(
            f"✅ {name} trained: accuracy={result.metrics.accuracy:.3f} "
            f"(±{result.metrics.accuracy_std:.3f}), model_id={stored.model_id}"
        )
        return stored
