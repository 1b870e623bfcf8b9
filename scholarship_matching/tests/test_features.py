"""
Test feature extraction: per-feature formulas, neutral defaults and vector order.
"""

from datetime import datetime, timedelta

import pytest

from scholarship_matching.logic import ApplicantProfile, ScholarshipCriteria, Scholarship, UploadedDocument
from scholarship_matching.logic.constants import FEATURE_NAMES
from scholarship_matching.logic.features import (
    FeatureExtractor,
    gwa_score,
    year_level_match,
    income_match,
    st_bracket_match,
    containment_match,
    document_completeness,
    application_timing,
    to_vector,
)


def test_gwa_bonus_applies_below_required_threshold():
    score = gwa_score(1.75, ScholarshipCriteria(max_gwa=2.0))
    assert score == pytest.approx(0.8125 + 0.025)
    assert score > 0.8


def test_gwa_score_bounds_and_defaults():
    assert gwa_score(1.0, ScholarshipCriteria(max_gwa=3.0)) == 1.0
    assert gwa_score(5.0, ScholarshipCriteria()) == 0.0
    assert gwa_score(None, ScholarshipCriteria()) == 0.5
    assert gwa_score(7.5, ScholarshipCriteria()) == 0.5
    # min_gwa is the fallback threshold when there is no max
    assert gwa_score(2.0, ScholarshipCriteria(min_gwa=2.5)) == pytest.approx(0.75 + 0.04)


def test_year_level_match():
    assert year_level_match("Junior", []) == 1.0
    assert year_level_match(None, ["Junior"]) == 0.5
    assert year_level_match("junior ", ["Junior"]) == 1.0
    assert year_level_match("4th Year", ["Senior"]) == 1.0
    assert year_level_match("Freshman", ["Junior", "Senior"]) == 0.0


def test_income_match():
    assert income_match(100000, 400000) == pytest.approx(0.875)
    assert income_match(400000, 400000) == pytest.approx(0.5)
    assert income_match(400001, 400000) == 0.0
    assert income_match(100000, None) == 0.8
    assert income_match(None, 400000) == 0.5


def test_st_bracket_match():
    assert st_bracket_match("FDS", ["FDS", "FD"]) == 1.0
    assert st_bracket_match("PD40", ["PD40"]) == pytest.approx(0.4)
    assert st_bracket_match("ND", ["FDS", "FD"]) == 0.0
    assert st_bracket_match("ND", []) == 0.8
    assert st_bracket_match(None, ["FDS"]) == 0.5


def test_containment_match():
    assert containment_match("College of Engineering", ["Engineering"]) == 1.0
    assert containment_match("Engineering", ["College of Engineering"]) == 1.0
    assert containment_match("College of Business", ["Engineering"]) == 0.0
    assert containment_match(None, ["Engineering"]) == 0.5
    assert containment_match("anything", []) == 1.0


def test_document_completeness():
    required = ["Transcript of Records", "Income Certificate"]
    assert document_completeness([], []) == 1.0
    assert document_completeness(required, []) == 0.0
    assert document_completeness(required, [UploadedDocument(document_type="transcript of records")]) == 0.5
    assert document_completeness(required, [
        UploadedDocument(name="Certified Transcript of Records 2024"),
        UploadedDocument(document_type="Income Certificate"),
    ]) == 1.0


def test_application_timing():
    deadline = datetime(2025, 6, 30)
    start = deadline - timedelta(days=100)

    assert application_timing(None, start, deadline) == 0.5
    assert application_timing(start - timedelta(days=1), start, deadline) == 1.0
    assert application_timing(start, start, deadline) == pytest.approx(1.0)
    assert application_timing(start + timedelta(days=50), start, deadline) == pytest.approx(0.55)
    assert application_timing(deadline, start, deadline) == 0.1
    # window defaults to 30 days before the deadline
    assert application_timing(deadline - timedelta(days=15), None, deadline) == pytest.approx(0.55)


def test_interactions_and_vector_order():
    scholarship = Scholarship(
        scholarship_id="s",
        criteria=ScholarshipCriteria(max_gwa=2.0, eligible_classifications=["Junior"]),
    )
    applicant = ApplicantProfile(gwa=1.75, classification="Junior")
    features, eligibility = FeatureExtractor().extract_for_prediction(applicant, scholarship)

    assert list(features) == FEATURE_NAMES
    assert eligibility.score == 100
    assert features["document_completeness"] == 0.9
    assert features["application_timing"] == 0.9
    assert features["eligibility_score"] == 1.0
    assert features["academic_strength"] == pytest.approx(features["gwa_score"])
    assert features["overall_fit"] == pytest.approx(features["academic_strength"])
    assert features["application_quality"] == pytest.approx(0.81)

    vector = to_vector(features)
    assert vector.shape == (15,)
    assert vector[0] == features["gwa_score"]
    assert vector[-1] == features["overall_fit"]


def test_training_set_drops_non_terminal(scholarship, outcome_factory):
    outcomes = outcome_factory(scholarship, 10, pending=3)
    X, y = FeatureExtractor().build_training_set(outcomes)

    assert X.shape == (10, len(FEATURE_NAMES))
    assert y.tolist() == [1.0, 0.0] * 5
    assert ((X >= 0) & (X <= 1)).all()


def test_extraction_is_deterministic(scholarship, outcome_factory):
    outcome = outcome_factory(scholarship, 1)[0]
    extractor = FeatureExtractor()
    assert extractor.extract_for_outcome(outcome) == extractor.extract_for_outcome(outcome)
