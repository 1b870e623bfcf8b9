"""
Test the training engine: seeded shuffling, logistic regression, k-fold
cross-validation and the per-scope sample minimums.
"""

import numpy as np
import pytest

from scholarship_matching.logic import ModelRegistry, SqlModelRepository, TrainingConfig
from scholarship_matching.logic.constants import FEATURE_NAMES
from scholarship_matching.logic.contracts import TrainingMetrics
from scholarship_matching.logic.exceptions import InsufficientDataError
from scholarship_matching.logic.features import FeatureExtractor
from scholarship_matching.logic.seeded_random import SeededRandom
from scholarship_matching.logic.trainer import (
    ModelTrainer,
    class_weights,
    cross_validate,
    evaluate_model,
    sigmoid,
    train_logistic_regression,
)
from scholarship_matching.logic.validation import (
    average_metrics,
    average_weights,
    create_k_folds,
    feature_importance,
)


@pytest.fixture
def trainer(session_factory, fast_config):
    registry = ModelRegistry(SqlModelRepository(session_factory), ttl_seconds=None)
    return ModelTrainer(registry, FeatureExtractor(), fast_config)


# =============================================================================
# SEEDED RANDOM & FOLDS
# =============================================================================

def test_seeded_random_sequence_is_reproducible():
    first = SeededRandom(42)
    second = SeededRandom(42)
    assert [first.next() for _ in range(5)] == [second.next() for _ in range(5)]
    assert SeededRandom(42).permutation(10) == SeededRandom(42).permutation(10)
    assert SeededRandom(42).permutation(10) != SeededRandom(7).permutation(10)


def test_seeded_random_lcg_step():
    rng = SeededRandom(42)
    expected = (42 * 1103515245 + 12345) & 0x7FFFFFFF
    assert rng.next() == expected / 0x7FFFFFFF
    assert 0 <= rng.next_int(3) < 3


def test_k_folds_partition_all_samples():
    folds = create_k_folds(23, 5, SeededRandom(42))
    assert len(folds) == 5

    test_sets = [set(test.tolist()) for _, test in folds]
    assert [len(s) for s in test_sets] == [4, 4, 4, 4, 7]
    assert set().union(*test_sets) == set(range(23))
    for train, test in folds:
        assert set(train.tolist()).isdisjoint(test.tolist())
        assert len(train) + len(test) == 23


def test_average_metrics_uses_population_std():
    folds = [
        TrainingMetrics(accuracy=0.8, precision=1.0, true_positives=2, false_negatives=1),
        TrainingMetrics(accuracy=0.6, precision=0.5, true_positives=1, false_positives=1),
    ]
    merged = average_metrics(folds)
    assert merged.accuracy == pytest.approx(0.7)
    assert merged.precision == pytest.approx(0.75)
    assert merged.accuracy_std == pytest.approx(0.1)
    assert merged.true_positives == 3
    assert merged.fold_accuracies == [0.8, 0.6]


def test_average_weights_and_importance():
    weights, bias = average_weights([(np.ones(15), 1.0), (np.full(15, 3.0), -2.0)])
    assert weights.tolist() == [2.0] * 15
    assert bias == pytest.approx(-0.5)

    importance = feature_importance(np.array([1.0, -3.0] + [0.0] * 13))
    assert importance["gwa_score"] == pytest.approx(0.25)
    assert importance["year_level_match"] == pytest.approx(0.75)
    assert sum(importance.values()) == pytest.approx(1.0)


# =============================================================================
# LOGISTIC REGRESSION
# =============================================================================

def test_sigmoid_is_stable_for_extreme_inputs():
    values = sigmoid(np.array([-10000.0, 0.0, 10000.0]))
    assert values[1] == 0.5
    assert 0.0 <= values[0] < 1e-200
    assert values[2] == 1.0


def test_class_weights_are_inverse_frequency():
    positive, negative = class_weights(np.array([1, 0, 0, 0], dtype=float))
    assert positive == 2.0
    assert negative == pytest.approx(4 / 6)
    assert class_weights(np.zeros(4)) == (2.0, 0.5)


def test_weights_and_bias_stay_clipped():
    # perfectly separable on one feature pushes weights toward infinity without clipping
    X = np.zeros((40, 15))
    X[:20, 0] = 1.0
    y = np.array([1.0] * 20 + [0.0] * 20)
    config = TrainingConfig(learning_rate=50.0, epochs=60, regularization=0.0, early_stopping_patience=60)

    fit = train_logistic_regression(X, y, config, SeededRandom(42))
    assert np.all(np.abs(fit.weights) <= 5.0)
    assert -3.0 <= fit.bias <= 3.0
    assert fit.weights[0] == pytest.approx(5.0)


def test_evaluate_model_confusion_counts():
    X = np.array([[1.0], [1.0], [-1.0], [-1.0]])
    y = np.array([1.0, 0.0, 0.0, 1.0])
    metrics = evaluate_model(X, y, np.array([2.0]), 0.0)

    assert (metrics.true_positives, metrics.false_positives) == (1, 1)
    assert (metrics.true_negatives, metrics.false_negatives) == (1, 1)
    assert metrics.accuracy == 0.5
    assert metrics.f1_score == pytest.approx(0.5)


def test_evaluate_model_zero_denominators():
    metrics = evaluate_model(np.array([[-1.0]]), np.array([0.0]), np.array([1.0]), 0.0)
    assert metrics.precision == 0.0
    assert metrics.recall == 0.0
    assert metrics.f1_score == 0.0


def test_cross_validation_is_bit_identical(scholarship, outcome_factory, fast_config):
    X, y = FeatureExtractor().build_training_set(outcome_factory(scholarship, 40))
    first = cross_validate(X, y, fast_config)
    second = cross_validate(X, y, fast_config)

    assert first.weights.tobytes() == second.weights.tobytes()
    assert first.bias == second.bias
    assert first.metrics == second.metrics


def test_cross_validation_learns_separable_data(scholarship, outcome_factory, fast_config):
    X, y = FeatureExtractor().build_training_set(outcome_factory(scholarship, 50))
    result = cross_validate(X, y, fast_config)

    assert result.metrics.accuracy >= 0.9
    assert len(result.metrics.fold_accuracies) == 5
    assert len(result.fold_epochs) == 5
    assert result.history and result.history[0].epoch == 0


# =============================================================================
# MODEL TRAINER
# =============================================================================

def test_global_training_requires_minimum_samples(trainer, scholarship, outcome_factory):
    outcomes = outcome_factory(scholarship, 49, pending=10)
    with pytest.raises(InsufficientDataError) as excinfo:
        trainer.train_global_model(outcomes)

    assert excinfo.value.required == 50
    assert excinfo.value.found == 49
    assert str(excinfo.value) == "Insufficient training data. Need at least 50 samples, found 49"
    assert trainer.registry.list_models() == []


def test_scholarship_training_threshold(trainer, scholarship_factory, outcome_factory):
    thirty = scholarship_factory("sch-30")
    twenty_nine = scholarship_factory("sch-29")
    outcomes = outcome_factory(thirty, 30) + outcome_factory(twenty_nine, 29)

    record = trainer.train_scholarship_model("sch-30", outcomes)
    assert record.is_active is True
    assert record.scope.scholarship_id == "sch-30"
    assert record.training_stats.total_samples == 30

    with pytest.raises(InsufficientDataError):
        trainer.train_scholarship_model("sch-29", outcomes)


def test_global_training_record(trainer, scholarship, outcome_factory):
    record = trainer.train_global_model(outcome_factory(scholarship, 50, pending=5), trained_by="admin-1")

    assert record.model_id
    assert record.scope.model_type == "global"
    assert list(record.weights) == FEATURE_NAMES
    assert all(-5.0 <= w <= 5.0 for w in record.weights.values())
    assert -3.0 <= record.bias <= 3.0
    assert record.training_stats.total_samples == 50
    assert record.training_stats.approved_count == 25
    assert record.training_stats.k_folds == 5
    assert sum(record.feature_importance.values()) == pytest.approx(1.0)
    assert record.training_config["random_seed"] == 42
    assert record.trained_by == "admin-1"


def test_train_all_scholarship_models(trainer, scholarship_factory, outcome_factory):
    big = scholarship_factory("sch-big", name="Big Grant")
    small = scholarship_factory("sch-small", name="Small Grant")
    outcomes = outcome_factory(big, 32) + outcome_factory(small, 12, pending=20)

    results = {r.scholarship_id: r for r in trainer.train_all_scholarship_models(outcomes)}

    assert results["sch-big"].success is True
    assert results["sch-big"].model_id is not None
    assert results["sch-small"].success is False
    assert results["sch-small"].error == "Insufficient data (12/30)"


def test_training_stats(trainer, scholarship_factory, outcome_factory):
    a = scholarship_factory("a")
    b = scholarship_factory("b")
    stats = trainer.get_training_stats(outcome_factory(a, 30) + outcome_factory(b, 5, pending=2))

    assert stats.total_applications == 37
    assert stats.terminal_count == 35
    assert stats.approved_count == 18
    assert stats.rejected_count == 17
    assert stats.ready_for_global_training is False
    assert stats.ready_scholarship_count == 1
