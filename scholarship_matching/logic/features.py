"""
Feature Extraction

Deterministic mapping of (applicant, scholarship, application context) to the
fixed 15-feature vector consumed by the trainer and the prediction service.

Feature order (FEATURE_NAMES):
    10 base features  : gwa_score ... eligibility_score
    5 interactions    : academic_strength, financial_need, program_fit,
                        application_quality, overall_fit

Missing applicant inputs degrade to neutral values instead of failing.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .constants import (
    FEATURE_NAMES,
    ST_BRACKET_NEED_SCORE,
    NEUTRAL_FEATURE_VALUE,
    NO_INCOME_THRESHOLD_SCORE,
    NO_BRACKET_RESTRICTION_SCORE,
    DEFAULT_REQUIRED_GWA,
    GWA_BEST,
    GWA_WORST,
    GWA_BONUS_MAX,
    PREDICTION_DOCUMENT_COMPLETENESS,
    PREDICTION_APPLICATION_TIMING,
    DEFAULT_APPLICATION_WINDOW_DAYS,
    TIMING_EARLY_SCORE,
    TIMING_LATE_SCORE,
    TIMING_DECAY,
)
from .contracts import (
    ApplicantProfile,
    ApplicationOutcome,
    EligibilityResult,
    Scholarship,
    ScholarshipCriteria,
    UploadedDocument,
)
from .eligibility import EligibilityEngine
from .normalizers import (
    canonical_st_bracket,
    canonical_year_level,
    fuzzy_contains,
    has_value,
    to_number,
)


# =============================================================================
# BASE FEATURES
# =============================================================================

def gwa_score(gwa: Optional[float], criteria: ScholarshipCriteria) -> float:
    """
    Rescale GWA (1.0 best, 5.0 worst) to [0, 1] with a bonus of up to 0.2 for
    applicants below the scholarship's required threshold.
    """
    value = to_number(gwa)
    if value is None or value < GWA_BEST or value > GWA_WORST:
        return NEUTRAL_FEATURE_VALUE

    score = (GWA_WORST - value) / (GWA_WORST - GWA_BEST)

    required = DEFAULT_REQUIRED_GWA
    if criteria.max_gwa is not None:
        required = criteria.max_gwa
    elif criteria.min_gwa is not None:
        required = criteria.min_gwa

    if required > 0 and value <= required:
        score += (required - value) / required * GWA_BONUS_MAX

    return min(1.0, score)


def year_level_match(classification: Optional[str], eligible: Sequence[str]) -> float:
    if not eligible:
        return 1.0
    if not has_value(classification):
        return NEUTRAL_FEATURE_VALUE
    applicant_level = canonical_year_level(classification)
    for level in eligible:
        if fuzzy_contains(applicant_level, canonical_year_level(level)):
            return 1.0
    return 0.0


def income_match(income: Optional[float], max_income: Optional[float]) -> float:
    """1 - 0.5 * income/threshold within the limit, 0 above it."""
    threshold = to_number(max_income)
    if threshold is None or threshold <= 0:
        return NO_INCOME_THRESHOLD_SCORE
    value = to_number(income)
    if value is None:
        return NEUTRAL_FEATURE_VALUE
    if value <= threshold:
        return 1.0 - 0.5 * (value / threshold)
    return 0.0


def st_bracket_match(bracket: Optional[str], eligible: Sequence[str]) -> float:
    """Need intensity of the applicant's bracket, gated by eligibility."""
    if not eligible:
        return NO_BRACKET_RESTRICTION_SCORE
    label = canonical_st_bracket(bracket)
    if label is None:
        return NEUTRAL_FEATURE_VALUE
    eligible_labels = {canonical_st_bracket(b).lower() for b in eligible if has_value(b)}
    if label.lower() not in eligible_labels:
        return 0.0
    return ST_BRACKET_NEED_SCORE.get(label, NEUTRAL_FEATURE_VALUE)


def containment_match(value: Optional[str], eligible: Sequence[str]) -> float:
    """Binary match using case-insensitive containment in either direction."""
    if not eligible:
        return 1.0
    if not has_value(value):
        return NEUTRAL_FEATURE_VALUE
    return 1.0 if any(fuzzy_contains(value, item) for item in eligible) else 0.0


def document_completeness(required: Sequence[str], documents: Sequence[UploadedDocument]) -> float:
    """Fraction of required document types matched by an uploaded document."""
    required = [r for r in required if has_value(r)]
    if not required:
        return 1.0
    if not documents:
        return 0.0

    matched = 0
    for requirement in required:
        for doc in documents:
            if fuzzy_contains(doc.document_type, requirement) or fuzzy_contains(doc.name, requirement):
                matched += 1
                break
    return matched / len(required)


def _naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def application_timing(
    applied_at: Optional[datetime],
    start_date: Optional[datetime],
    deadline: Optional[datetime],
) -> float:
    """
    Decays linearly from 1.0 at window open to 0.1 at the deadline.

    The window opens DEFAULT_APPLICATION_WINDOW_DAYS before the deadline when
    no start date is known.
    """
    if applied_at is None or deadline is None:
        return NEUTRAL_FEATURE_VALUE

    applied = _naive_utc(applied_at)
    close = _naive_utc(deadline)
    opened = _naive_utc(start_date) if start_date is not None else close - timedelta(days=DEFAULT_APPLICATION_WINDOW_DAYS)

    if applied < opened:
        return TIMING_EARLY_SCORE
    if applied >= close:
        return TIMING_LATE_SCORE

    elapsed = (applied - opened).total_seconds() / (close - opened).total_seconds()
    return TIMING_EARLY_SCORE - TIMING_DECAY * elapsed


def add_interactions(features: Dict[str, float]) -> Dict[str, float]:
    features["academic_strength"] = features["gwa_score"] * features["year_level_match"]
    features["financial_need"] = features["income_match"] * features["st_bracket_match"]
    features["program_fit"] = features["college_match"] * features["course_match"]
    features["application_quality"] = features["document_completeness"] * features["application_timing"]
    features["overall_fit"] = features["eligibility_score"] * features["academic_strength"]
    return features


# =============================================================================
# EXTRACTOR
# =============================================================================

class FeatureExtractor:
    """
    Builds feature dicts and numpy matrices.

    Args:
        eligibility_engine: Engine used for the eligibility_score feature
    """

    def __init__(self, eligibility_engine: Optional[EligibilityEngine] = None):
        self.eligibility_engine = eligibility_engine or EligibilityEngine()

    def extract(
        self,
        applicant: ApplicantProfile,
        scholarship: Scholarship,
        document_score: float,
        timing_score: float,
        eligibility: Optional[EligibilityResult] = None,
    ) -> Tuple[Dict[str, float], EligibilityResult]:
        criteria = scholarship.criteria
        if eligibility is None:
            eligibility = self.eligibility_engine.check(applicant, criteria)

        features = {
            "gwa_score": gwa_score(applicant.gwa, criteria),
            "year_level_match": year_level_match(applicant.classification, criteria.eligible_classifications),
            "income_match": income_match(applicant.annual_family_income, criteria.max_annual_family_income),
            "st_bracket_match": st_bracket_match(applicant.st_bracket, criteria.eligible_st_brackets),
            "college_match": containment_match(applicant.college, criteria.eligible_colleges),
            "course_match": containment_match(applicant.course, criteria.eligible_courses),
            "citizenship_match": containment_match(applicant.citizenship, criteria.eligible_citizenship),
            "document_completeness": document_score,
            "application_timing": timing_score,
            "eligibility_score": eligibility.score / 100.0,
        }
        return add_interactions(features), eligibility

    def extract_for_outcome(self, outcome: ApplicationOutcome) -> Dict[str, float]:
        """Features of a historical application, using its real documents and timing."""
        scholarship = outcome.scholarship
        features, _ = self.extract(
            outcome.applicant_snapshot,
            scholarship,
            document_score=document_completeness(scholarship.required_documents, outcome.documents),
            timing_score=application_timing(
                outcome.applied_at,
                scholarship.application_start_date,
                scholarship.application_deadline,
            ),
        )
        return features

    def extract_for_prediction(
        self,
        applicant: ApplicantProfile,
        scholarship: Scholarship,
    ) -> Tuple[Dict[str, float], EligibilityResult]:
        """Features for a prospective application; no submission exists yet."""
        return self.extract(
            applicant,
            scholarship,
            document_score=PREDICTION_DOCUMENT_COMPLETENESS,
            timing_score=PREDICTION_APPLICATION_TIMING,
        )

    def build_training_set(self, outcomes: List[ApplicationOutcome]) -> Tuple[np.ndarray, np.ndarray]:
        """
        Feature matrix X (n x 15) and label vector y for terminal outcomes.
        Non-terminal outcomes are dropped.
        """
        rows = []
        labels = []
        for outcome in outcomes:
            if not outcome.is_terminal:
                continue
            rows.append(to_vector(self.extract_for_outcome(outcome)))
            labels.append(outcome.label)
        if not rows:
            return np.zeros((0, len(FEATURE_NAMES))), np.zeros(0)
        return np.vstack(rows), np.asarray(labels, dtype=float)


def to_vector(features: Dict[str, float]) -> np.ndarray:
    """Feature dict -> float vector in FEATURE_NAMES order."""
    return np.array([float(features.get(name, 0.0)) for name in FEATURE_NAMES], dtype=float)
