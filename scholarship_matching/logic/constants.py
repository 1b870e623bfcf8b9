"""
Scholarship Matching Constants

Defines enums, lookup tables, feature ordering and thresholds shared by the
eligibility engine, the feature extractor, the trainer and the prediction service.
"""

from enum import Enum
from typing import Dict, List, Tuple


# =============================================================================
# ENUMS
# =============================================================================

class ApplicationStatus(str, Enum):
    """Lifecycle status of a scholarship application."""
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


TERMINAL_STATUSES = (ApplicationStatus.APPROVED.value, ApplicationStatus.REJECTED.value)


class Importance(str, Enum):
    """Importance tier of an eligibility check."""
    REQUIRED = "required"
    PREFERRED = "preferred"
    OPTIONAL = "optional"


class CheckCategory(str, Enum):
    """Grouping used to summarize eligibility checks."""
    ACADEMIC = "academic"
    FINANCIAL = "financial"
    STATUS = "status"
    LOCATION = "location"
    DEMOGRAPHIC = "demographic"
    CUSTOM = "custom"


class ConditionKind(str, Enum):
    RANGE = "range"
    BOOLEAN = "boolean"
    LIST = "list"


class ModelType(str, Enum):
    """Scope of a trained model."""
    GLOBAL = "global"
    SCHOLARSHIP_SPECIFIC = "scholarship_specific"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MatchLevel(str, Enum):
    STRONG = "Strong"
    GOOD = "Good"
    MODERATE = "Moderate"
    WEAK = "Weak"


# =============================================================================
# VALUE MAPPINGS
# =============================================================================

# ST bracket short codes as stored on applicant profiles
ST_BRACKET_LABELS: Dict[str, str] = {
    "FDS": "Full Discount with Stipend",
    "FD": "Full Discount",
    "PD80": "PD80",
    "PD60": "PD60",
    "PD40": "PD40",
    "PD20": "PD20",
    "ND": "No Discount",
}

# Financial need intensity by ST bracket (higher = more need)
ST_BRACKET_NEED_SCORE: Dict[str, float] = {
    "Full Discount with Stipend": 1.0,
    "Full Discount": 0.85,
    "PD80": 0.7,
    "PD60": 0.55,
    "PD40": 0.4,
    "PD20": 0.25,
    "No Discount": 0.1,
}

YEAR_LEVEL_LABELS: Dict[str, str] = {
    "1ST YEAR": "Freshman",
    "2ND YEAR": "Sophomore",
    "3RD YEAR": "Junior",
    "4TH YEAR": "Senior",
    "5TH YEAR": "Senior",
}


# =============================================================================
# FEATURE DEFINITIONS
# =============================================================================

BASE_FEATURES: List[str] = [
    "gwa_score",
    "year_level_match",
    "income_match",
    "st_bracket_match",
    "college_match",
    "course_match",
    "citizenship_match",
    "document_completeness",
    "application_timing",
    "eligibility_score",
]

INTERACTION_FEATURES: List[str] = [
    "academic_strength",
    "financial_need",
    "program_fit",
    "application_quality",
    "overall_fit",
]

# Column order of every feature matrix and weight vector
FEATURE_NAMES: List[str] = BASE_FEATURES + INTERACTION_FEATURES

FEATURE_DESCRIPTIONS: Dict[str, str] = {
    "gwa_score": "Academic performance (GWA)",
    "year_level_match": "Year level eligibility",
    "income_match": "Financial need (income)",
    "st_bracket_match": "ST bracket eligibility",
    "college_match": "College eligibility",
    "course_match": "Course eligibility",
    "citizenship_match": "Citizenship eligibility",
    "document_completeness": "Document completeness",
    "application_timing": "Application timing",
    "eligibility_score": "Overall eligibility score",
    "academic_strength": "Academic strength (GWA x year level)",
    "financial_need": "Financial need (income x ST bracket)",
    "program_fit": "Program fit (college x course)",
    "application_quality": "Application quality (documents x timing)",
    "overall_fit": "Overall fit (eligibility x academic strength)",
}

# Neutral value used when an input is missing
NEUTRAL_FEATURE_VALUE = 0.5
NO_INCOME_THRESHOLD_SCORE = 0.8
NO_BRACKET_RESTRICTION_SCORE = 0.8
DEFAULT_REQUIRED_GWA = 3.0
GWA_BEST = 1.0
GWA_WORST = 5.0
GWA_BONUS_MAX = 0.2

# Placeholders used at prediction time, before any submission exists
PREDICTION_DOCUMENT_COMPLETENESS = 0.9
PREDICTION_APPLICATION_TIMING = 0.9

# Application window defaults
DEFAULT_APPLICATION_WINDOW_DAYS = 30
TIMING_EARLY_SCORE = 1.0
TIMING_LATE_SCORE = 0.1
TIMING_DECAY = 0.9


# =============================================================================
# FACTOR GROUPS
# =============================================================================

FACTOR_GROUPS: Dict[str, List[str]] = {
    "Academic Standing": ["gwa_score", "year_level_match", "academic_strength"],
    "Financial Need": ["income_match", "st_bracket_match", "financial_need"],
    "Program Match": ["college_match", "course_match", "program_fit"],
    "Application Timing": ["application_timing"],
    "Overall Eligibility": ["citizenship_match", "eligibility_score", "overall_fit"],
}


# =============================================================================
# PREDICTION THRESHOLDS
# =============================================================================

DECISION_THRESHOLD = 0.5

CONFIDENCE_HIGH_MARGIN = 0.30
CONFIDENCE_MEDIUM_MARGIN = 0.10

HISTORY_APPROVAL_BOOST = 0.02
HISTORY_REJECTION_PENALTY = 0.01
PROBABILITY_FLOOR = 0.10
PROBABILITY_CEILING = 0.90

# Lower probability bound per match level, highest first
MATCH_LEVEL_THRESHOLDS: List[Tuple[float, MatchLevel]] = [
    (0.75, MatchLevel.STRONG),
    (0.60, MatchLevel.GOOD),
    (0.45, MatchLevel.MODERATE),
]

RECOMMENDATION_TEXTS: List[Tuple[float, str]] = [
    (0.75, "Strongly recommended! Your profile is an excellent match for this scholarship."),
    (0.60, "Good match! You have a solid chance of approval. Make sure all documents are complete."),
    (0.45, "Moderate match. You meet basic requirements but may face competition."),
    (0.25, "Low match. Review eligibility criteria carefully before applying."),
]
NOT_RECOMMENDED_TEXT = "Not recommended. Your current profile may not be competitive for this scholarship."


# =============================================================================
# MODEL STORE
# =============================================================================

GLOBAL_SCOPE_KEY = "global"
SCHOLARSHIP_SCOPE_PREFIX = "scholarship_"
MODEL_CACHE_TTL_SECONDS = 300

WEIGHT_CLIP = 5.0
BIAS_CLIP = 3.0
Z_CLIP = 500.0
LOSS_EPSILON = 1e-15
HISTORY_INTERVAL_EPOCHS = 50
