"""
Prediction Service

Selects the model for a scholarship (specific, else global), scores the
applicant, adjusts the probability for the applicant's own history and explains
the result. Read-only and safe for concurrent use.
"""

import logging
from collections import Counter
from typing import Iterable, Optional, Protocol, Tuple

import numpy as np

from .constants import DECISION_THRESHOLD, FEATURE_NAMES
from .contracts import ApplicantProfile, ApplicationOutcome, PredictionResult, Scholarship
from .factors import (
    adjust_for_history,
    confidence_level,
    feature_contributions,
    group_factors,
    match_level,
    recommendation_text,
)
from .features import FeatureExtractor, to_vector
from .model_store import ModelRegistry
from .trainer import sigmoid

logger = logging.getLogger(__name__)


class ApplicantHistory(Protocol):
    def counts(self, applicant_id: str) -> Tuple[int, int]:
        """(prior approvals, prior rejections) of an applicant."""
        ...


class InMemoryApplicantHistory:
    """ApplicantHistory built from a list of historical outcomes."""

    def __init__(self, outcomes: Iterable[ApplicationOutcome] = ()):
        self._approvals: Counter = Counter()
        self._rejections: Counter = Counter()
        for outcome in outcomes:
            self.record(outcome)

    def record(self, outcome: ApplicationOutcome) -> None:
        if not outcome.applicant_id or not outcome.is_terminal:
            return
        if outcome.label == 1:
            self._approvals[outcome.applicant_id] += 1
        else:
            self._rejections[outcome.applicant_id] += 1

    def counts(self, applicant_id: str) -> Tuple[int, int]:
        return self._approvals[applicant_id], self._rejections[applicant_id]


class PredictionService:
    """
    Computes approval probabilities.

    Args:
        registry: ModelRegistry used for model selection
        extractor: Feature extractor (also provides the eligibility engine)
        history: Source of prior approval/rejection counts
    """

    def __init__(
        self,
        registry: ModelRegistry,
        extractor: Optional[FeatureExtractor] = None,
        history: Optional[ApplicantHistory] = None,
    ):
        self.registry = registry
        self.extractor = extractor or FeatureExtractor()
        if history is None:
            logger.debug("No applicant history injected; predictions will not be adjusted for prior outcomes")
            history = InMemoryApplicantHistory()
        self.history = history

    def predict(self, applicant: ApplicantProfile, scholarship: Scholarship) -> PredictionResult:
        """
        Predict the approval probability of `applicant` for `scholarship`.

        Raises:
            ModelUnavailableError: no scholarship-specific or global model is active
        """
        model = self.registry.select_for_scholarship(scholarship.scholarship_id)
        features, eligibility = self.extractor.extract_for_prediction(applicant, scholarship)

        weights = np.array([model.weights.get(name, 0.0) for name in FEATURE_NAMES], dtype=float)
        z = float(to_vector(features) @ weights + model.bias)
        base_probability = float(sigmoid(z))

        approvals, rejections = (0, 0)
        if applicant.applicant_id:
            approvals, rejections = self.history.counts(applicant.applicant_id)
        probability = adjust_for_history(base_probability, approvals, rejections)

        contributions = feature_contributions(features, model.weights)

        logger.info(
            f"🎯 Prediction for {applicant.applicant_id or 'anonymous'} on {scholarship.scholarship_id}: "
            f"p={probability:.3f} (base {base_probability:.3f}) via {model.scope.model_type} model {model.model_id}"
        )

        return PredictionResult(
            applicant_id=applicant.applicant_id,
            scholarship_id=scholarship.scholarship_id,
            probability=probability,
            base_probability=base_probability,
            z_score=z,
            predicted_approved=probability >= DECISION_THRESHOLD,
            confidence=confidence_level(base_probability),
            match_level=match_level(probability),
            recommendation=recommendation_text(probability),
            prior_approvals=approvals,
            prior_rejections=rejections,
            features=features,
            contributions=contributions,
            factors=group_factors(contributions),
            eligibility=eligibility,
            model_id=model.model_id,
            model_name=model.name,
            model_type=model.scope.model_type,
        )
