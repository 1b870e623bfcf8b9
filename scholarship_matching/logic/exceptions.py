"""
Scholarship Matching Errors

All errors raised across the matching core derive from ScholarshipMatchingError,
so callers at the API boundary can catch a single type.
"""

from typing import Optional


class ScholarshipMatchingError(Exception):
    """Base error for the matching core."""


class InsufficientDataError(ScholarshipMatchingError):
    """Training was requested with fewer terminal samples than the scope minimum."""

    def __init__(self, required: int, found: int, scholarship_id: Optional[str] = None):
        self.required = required
        self.found = found
        self.scholarship_id = scholarship_id
        super().__init__(
            f"Insufficient training data. Need at least {required} samples, found {found}"
        )


class ModelUnavailableError(ScholarshipMatchingError):
    """Neither a scholarship-specific nor a global model is active."""

    def __init__(self, scholarship_id: Optional[str] = None):
        self.scholarship_id = scholarship_id
        super().__init__("No trained model available. Please train a global model first")


class MalformedConditionError(ScholarshipMatchingError):
    """A custom eligibility condition cannot be compiled or evaluated."""


class ModelNotFoundError(ScholarshipMatchingError):
    def __init__(self, model_id: str):
        self.model_id = model_id
        super().__init__(f"Trained model not found: {model_id}")
