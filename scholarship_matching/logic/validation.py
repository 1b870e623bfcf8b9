"""
K-Fold Cross-Validation Helpers

Fold partitioning and aggregation of per-fold models and metrics.
"""

from typing import Dict, List, Tuple

import numpy as np

from .constants import FEATURE_NAMES
from .contracts import TrainingMetrics
from .seeded_random import SeededRandom


def create_k_folds(n_samples: int, k: int, rng: SeededRandom) -> List[Tuple[np.ndarray, np.ndarray]]:
    """
    Shuffle sample indices once, then cut them into k contiguous folds.
    The last fold absorbs the remainder.

    Returns:
        List of (train_indices, test_indices), one per fold
    """
    k = max(2, min(k, n_samples))
    order = np.asarray(rng.permutation(n_samples), dtype=int)
    fold_size = n_samples // k

    folds = []
    for i in range(k):
        start = i * fold_size
        end = n_samples if i == k - 1 else start + fold_size
        test_idx = order[start:end]
        train_idx = np.concatenate([order[:start], order[end:]])
        folds.append((train_idx, test_idx))
    return folds


def average_metrics(fold_metrics: List[TrainingMetrics]) -> TrainingMetrics:
    """Mean accuracy/precision/recall/F1, summed confusion counts, accuracy std."""
    if not fold_metrics:
        return TrainingMetrics()

    accuracies = np.array([m.accuracy for m in fold_metrics], dtype=float)
    return TrainingMetrics(
        accuracy=float(accuracies.mean()),
        precision=float(np.mean([m.precision for m in fold_metrics])),
        recall=float(np.mean([m.recall for m in fold_metrics])),
        f1_score=float(np.mean([m.f1_score for m in fold_metrics])),
        true_positives=sum(m.true_positives for m in fold_metrics),
        true_negatives=sum(m.true_negatives for m in fold_metrics),
        false_positives=sum(m.false_positives for m in fold_metrics),
        false_negatives=sum(m.false_negatives for m in fold_metrics),
        # population std across folds
        accuracy_std=float(accuracies.std()),
        fold_accuracies=[float(a) for a in accuracies],
    )


def average_weights(fold_models: List[Tuple[np.ndarray, float]]) -> Tuple[np.ndarray, float]:
    """Element-wise mean of fold weight vectors and biases."""
    weights = np.mean(np.vstack([w for w, _ in fold_models]), axis=0)
    bias = float(np.mean([b for _, b in fold_models]))
    return weights, bias


def feature_importance(weights: np.ndarray) -> Dict[str, float]:
    """|w_i| / sum |w| per feature."""
    magnitudes = np.abs(weights)
    total = float(magnitudes.sum())
    if total == 0:
        return {name: 0.0 for name in FEATURE_NAMES}
    return {name: float(m / total) for name, m in zip(FEATURE_NAMES, magnitudes)}
