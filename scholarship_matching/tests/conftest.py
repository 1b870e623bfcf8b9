"""
Shared fixtures: in-memory SQLite model storage, a fast training config and
synthetic application outcomes.
"""

import logging
from datetime import datetime, timedelta

import pytest
from sqlalchemy.pool import StaticPool

from db import init_db, make_engine, make_session_factory
from scholarship_matching.logic.config import TrainingConfig
from scholarship_matching.logic.contracts import (
    ApplicantProfile,
    ApplicationOutcome,
    Scholarship,
    ScholarshipCriteria,
    UploadedDocument,
)

# Configure logging to see pipeline output
logging.basicConfig(
    level=logging.INFO,
    format='%(levelname)s - %(message)s'
)

DEADLINE = datetime(2025, 6, 30)


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def fast_config():
    return TrainingConfig(epochs=80, early_stopping_patience=20, model_cache_ttl_seconds=None)


def build_scholarship(scholarship_id="sch-1", name="Academic Excellence Grant", **criteria):
    defaults = dict(
        max_gwa=2.5,
        max_annual_family_income=400000,
        eligible_colleges=["College of Engineering", "College of Arts and Sciences"],
        eligible_st_brackets=["FDS", "FD", "PD80", "PD60"],
    )
    defaults.update(criteria)
    return Scholarship(
        scholarship_id=scholarship_id,
        name=name,
        criteria=ScholarshipCriteria(**defaults),
        required_documents=["Transcript of Records", "Income Certificate"],
        application_start_date=DEADLINE - timedelta(days=60),
        application_deadline=DEADLINE,
    )


def build_outcomes(scholarship, count, start=0, pending=0):
    """
    Deterministic synthetic history: even-numbered applicants are strong and
    approved, odd-numbered ones are weak and rejected.
    """
    outcomes = []
    for i in range(start, start + count):
        strong = i % 2 == 0
        profile = ApplicantProfile(
            applicant_id=f"app-{i}",
            gwa=1.5 + (i % 5) * 0.1 if strong else 3.0 + (i % 5) * 0.2,
            classification="Junior",
            college="College of Engineering" if strong else "College of Business",
            course="BS Computer Science",
            annual_family_income=150000 + (i % 7) * 10000 if strong else 600000 + (i % 7) * 20000,
            st_bracket="FDS" if strong else "ND",
            citizenship="Filipino",
        )
        documents = [UploadedDocument(document_type="Transcript of Records")]
        if strong:
            documents.append(UploadedDocument(document_type="Income Certificate"))
        outcomes.append(ApplicationOutcome(
            outcome_id=f"{scholarship.scholarship_id}-{i}",
            applicant_id=profile.applicant_id,
            scholarship=scholarship,
            status="approved" if strong else "rejected",
            applicant_snapshot=profile,
            documents=documents,
            applied_at=DEADLINE - timedelta(days=50 if strong else 2),
        ))
    for j in range(pending):
        outcomes.append(ApplicationOutcome(
            outcome_id=f"{scholarship.scholarship_id}-pending-{j}",
            applicant_id=f"pending-{j}",
            scholarship=scholarship,
            status="pending",
            applicant_snapshot=ApplicantProfile(applicant_id=f"pending-{j}", gwa=1.2),
        ))
    return outcomes


@pytest.fixture
def scholarship():
    return build_scholarship()


@pytest.fixture
def strong_applicant():
    return ApplicantProfile(
        applicant_id="student-strong",
        gwa=1.5,
        classification="Junior",
        college="College of Engineering",
        course="BS Computer Science",
        annual_family_income=120000,
        st_bracket="FDS",
        citizenship="Filipino",
    )


@pytest.fixture
def weak_applicant():
    return ApplicantProfile(
        applicant_id="student-weak",
        gwa=3.4,
        classification="Junior",
        college="College of Business",
        course="BS Accountancy",
        annual_family_income=900000,
        st_bracket="ND",
        citizenship="Filipino",
    )


@pytest.fixture
def scholarship_factory():
    return build_scholarship


@pytest.fixture
def outcome_factory():
    return build_outcomes
