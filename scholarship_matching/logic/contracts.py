"""
Data Contracts for the Scholarship Matching Core

Defines Pydantic models for applicant profiles and scholarship criteria (input),
historical application outcomes (training data), and eligibility, training and
prediction results (output). These contracts are the API boundary of the core.
"""

from datetime import datetime
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field

from .constants import (
    ApplicationStatus,
    CheckCategory,
    Importance,
    ModelType,
    TERMINAL_STATUSES,
    GLOBAL_SCOPE_KEY,
    SCHOLARSHIP_SCOPE_PREFIX,
)


# =============================================================================
# INPUT CONTRACTS
# =============================================================================

class ApplicantProfile(BaseModel):
    """
    Applicant attributes read by the eligibility engine and the feature extractor.
    Every field is optional; missing values degrade to neutral feature values.
    """
    applicant_id: Optional[str] = None
    profile_completed: bool = False

    # Academic
    gwa: Optional[float] = None
    classification: Optional[str] = None  # Freshman/Sophomore/Junior/Senior/...
    college: Optional[str] = None
    course: Optional[str] = None
    major: Optional[str] = None
    units_enrolled: Optional[float] = None
    units_passed: Optional[float] = None

    # Financial
    annual_family_income: Optional[float] = None
    st_bracket: Optional[str] = None
    household_size: Optional[int] = None

    # Demographic
    citizenship: Optional[str] = None
    province_of_origin: Optional[str] = None

    # Status flags
    has_existing_scholarship: bool = False
    has_thesis_grant: bool = False
    has_disciplinary_action: bool = False
    has_failing_grade: bool = False
    has_grade_of_4: bool = False
    has_incomplete_grade: bool = False
    has_approved_thesis_outline: bool = False
    is_graduating: bool = False

    # Extra attributes referenced by administrator-defined conditions
    custom_fields: Dict[str, Any] = Field(default_factory=dict)


class CustomCondition(BaseModel):
    """
    Administrator-defined condition, kept loosely typed so a broken entry can be
    reported as a failed check instead of rejecting the whole criteria record.
    """
    name: str = "Custom condition"
    field_path: str = ""
    kind: str = "range"  # range/boolean/list
    operator: str = ""
    value: Any = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    values: List[Any] = Field(default_factory=list)
    fuzzy: bool = False
    importance: str = Importance.REQUIRED.value
    category: str = CheckCategory.CUSTOM.value
    description: Optional[str] = None


class ScholarshipCriteria(BaseModel):
    """Thresholds, eligible lists and requirement flags defined by a scholarship."""
    # Ranges
    min_gwa: Optional[float] = None
    max_gwa: Optional[float] = None
    min_annual_family_income: Optional[float] = None
    max_annual_family_income: Optional[float] = None
    min_units_enrolled: Optional[float] = None
    min_units_passed: Optional[float] = None

    # Lists
    eligible_classifications: List[str] = Field(default_factory=list)
    eligible_colleges: List[str] = Field(default_factory=list)
    eligible_courses: List[str] = Field(default_factory=list)
    eligible_majors: List[str] = Field(default_factory=list)
    eligible_st_brackets: List[str] = Field(default_factory=list)
    eligible_provinces: List[str] = Field(default_factory=list)
    eligible_citizenship: List[str] = Field(default_factory=list)

    # Requirements
    must_not_have_other_scholarship: bool = False
    must_not_have_thesis_grant: bool = False
    must_not_have_disciplinary_action: bool = False
    must_not_have_failing_grade: bool = False
    must_not_have_grade_of_4: bool = False
    must_not_have_incomplete_grade: bool = False
    requires_approved_thesis: bool = False
    must_be_graduating: bool = False

    custom_conditions: List[CustomCondition] = Field(default_factory=list)


class Scholarship(BaseModel):
    """Scholarship record as handed to the core by the surrounding system."""
    scholarship_id: str
    name: str = ""
    criteria: ScholarshipCriteria = Field(default_factory=ScholarshipCriteria)
    required_documents: List[str] = Field(default_factory=list)
    application_start_date: Optional[datetime] = None
    application_deadline: Optional[datetime] = None


class UploadedDocument(BaseModel):
    document_type: Optional[str] = None
    name: Optional[str] = None


class ApplicationOutcome(BaseModel):
    """
    Historical application of one applicant against one scholarship.
    Only approved/rejected records are usable as training samples.
    """
    outcome_id: Optional[str] = None
    applicant_id: Optional[str] = None
    scholarship: Scholarship
    status: ApplicationStatus = ApplicationStatus.PENDING
    applicant_snapshot: ApplicantProfile = Field(default_factory=ApplicantProfile)
    documents: List[UploadedDocument] = Field(default_factory=list)
    applied_at: Optional[datetime] = None

    class Config:
        use_enum_values = True

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def label(self) -> int:
        return 1 if self.status == ApplicationStatus.APPROVED.value else 0


# =============================================================================
# ELIGIBILITY CONTRACTS
# =============================================================================

class CheckResult(BaseModel):
    """Outcome of evaluating one criterion against one applicant."""
    criterion_id: str
    criterion: str
    passed: bool
    category: str = CheckCategory.CUSTOM.value
    applicant_value: str = "Not specified"
    required_value: str = ""
    importance: str = Importance.REQUIRED.value
    condition_kind: Optional[str] = None
    notes: Optional[str] = None
    error: bool = False


class CheckSummary(BaseModel):
    passed: int = 0
    total: int = 0


class EligibilityResult(BaseModel):
    """Aggregate eligibility verdict for one applicant and one scholarship."""
    passed: bool = True
    score: int = Field(default=100, ge=0, le=100)
    checks: List[CheckResult] = Field(default_factory=list)
    category_summaries: Dict[str, CheckSummary] = Field(default_factory=dict)
    importance_summaries: Dict[str, CheckSummary] = Field(default_factory=dict)
    passed_count: int = 0
    total_count: int = 0
    failed_required: List[str] = Field(default_factory=list)


# =============================================================================
# TRAINING CONTRACTS
# =============================================================================

class ModelScope(BaseModel):
    """Granularity at which a trained model applies."""
    model_type: ModelType = ModelType.GLOBAL
    scholarship_id: Optional[str] = None

    class Config:
        use_enum_values = True
        protected_namespaces = ()

    @classmethod
    def global_scope(cls) -> "ModelScope":
        return cls(model_type=ModelType.GLOBAL)

    @classmethod
    def for_scholarship(cls, scholarship_id: str) -> "ModelScope":
        return cls(model_type=ModelType.SCHOLARSHIP_SPECIFIC, scholarship_id=scholarship_id)

    @property
    def key(self) -> str:
        if self.model_type == ModelType.GLOBAL.value:
            return GLOBAL_SCOPE_KEY
        return f"{SCHOLARSHIP_SCOPE_PREFIX}{self.scholarship_id}"


class TrainingMetrics(BaseModel):
    accuracy: float = 0.0
    precision: float = 0.0
    recall: float = 0.0
    f1_score: float = 0.0
    true_positives: int = 0
    true_negatives: int = 0
    false_positives: int = 0
    false_negatives: int = 0
    accuracy_std: float = 0.0
    fold_accuracies: List[float] = Field(default_factory=list)


class TrainingHistoryPoint(BaseModel):
    epoch: int
    loss: float
    accuracy: float


class TrainingStats(BaseModel):
    total_samples: int = 0
    approved_count: int = 0
    rejected_count: int = 0
    k_folds: int = 0
    fold_epochs: List[int] = Field(default_factory=list)
    history: List[TrainingHistoryPoint] = Field(default_factory=list)


class TrainedModelRecord(BaseModel):
    """
    Versioned weight set for one scope. Only `is_active` ever changes after
    the record is persisted; retraining always creates a new record.
    """
    model_id: Optional[str] = None
    name: str = ""
    version: str = "1.0.0"
    scope: ModelScope = Field(default_factory=ModelScope)
    weights: Dict[str, float] = Field(default_factory=dict)
    bias: float = 0.0
    metrics: TrainingMetrics = Field(default_factory=TrainingMetrics)
    training_stats: TrainingStats = Field(default_factory=TrainingStats)
    training_config: Dict[str, Any] = Field(default_factory=dict)
    feature_importance: Dict[str, float] = Field(default_factory=dict)
    is_active: bool = False
    created_at: Optional[datetime] = None
    trained_by: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True
        protected_namespaces = ()


class ScholarshipTrainingResult(BaseModel):
    """Per-scholarship entry of a bulk training run."""
    scholarship_id: str
    scholarship_name: str = ""
    success: bool = False
    sample_count: int = 0
    model_id: Optional[str] = None
    accuracy: Optional[float] = None
    error: Optional[str] = None

    class Config:
        protected_namespaces = ()


class ScholarshipDataCount(BaseModel):
    scholarship_id: str
    scholarship_name: str = ""
    approved: int = 0
    rejected: int = 0
    total: int = 0
    ready_for_training: bool = False


class TrainingDataStats(BaseModel):
    """Counts describing how much labeled data is available per scope."""
    total_applications: int = 0
    approved_count: int = 0
    rejected_count: int = 0
    terminal_count: int = 0
    ready_for_global_training: bool = False
    min_samples_global: int = 0
    min_samples_per_scholarship: int = 0
    scholarships: List[ScholarshipDataCount] = Field(default_factory=list)

    @property
    def ready_scholarship_count(self) -> int:
        return sum(1 for s in self.scholarships if s.ready_for_training)


# =============================================================================
# PREDICTION CONTRACTS
# =============================================================================

class FeatureContribution(BaseModel):
    """Signed contribution weight_i * feature_i of one feature."""
    feature: str
    value: float
    weight: float
    contribution: float
    description: str = ""


class FactorGroup(BaseModel):
    name: str
    contribution: float  # normalized by total absolute contribution
    raw_contribution: float
    features: List[str] = Field(default_factory=list)
    description: str = ""


class PredictionResult(BaseModel):
    """Decision-support output for one applicant and one scholarship."""
    applicant_id: Optional[str] = None
    scholarship_id: str

    probability: float = Field(ge=0.0, le=1.0)
    base_probability: float = Field(ge=0.0, le=1.0)
    z_score: float = 0.0
    predicted_approved: bool = False
    confidence: str = "low"
    match_level: str = "Weak"
    recommendation: str = ""

    prior_approvals: int = 0
    prior_rejections: int = 0

    features: Dict[str, float] = Field(default_factory=dict)
    contributions: List[FeatureContribution] = Field(default_factory=list)
    factors: List[FactorGroup] = Field(default_factory=list)
    eligibility: Optional[EligibilityResult] = None

    model_id: Optional[str] = None
    model_name: str = ""
    model_type: str = ModelType.GLOBAL.value

    class Config:
        protected_namespaces = ()
