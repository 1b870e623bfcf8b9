"""
Scholarship Matching Logic Module

Eligibility rules, feature extraction, logistic-regression training and
approval-probability prediction for scholarship applications.
"""

from .contracts import (
    ApplicantProfile,
    ScholarshipCriteria,
    CustomCondition,
    Scholarship,
    UploadedDocument,
    ApplicationOutcome,
    CheckResult,
    EligibilityResult,
    ModelScope,
    TrainingMetrics,
    TrainingStats,
    TrainedModelRecord,
    ScholarshipTrainingResult,
    TrainingDataStats,
    FeatureContribution,
    FactorGroup,
    PredictionResult,
)
from .config import TrainingConfig, load_training_config
from .eligibility import EligibilityEngine, check_eligibility
from .features import FeatureExtractor
from .model_store import ModelRegistry, SqlModelRepository
from .predictor import PredictionService, InMemoryApplicantHistory
from .trainer import ModelTrainer
from .engine import ScholarshipMatchingEngine
from .constants import ApplicationStatus, Importance, ModelType, FEATURE_NAMES
from .exceptions import (
    ScholarshipMatchingError,
    InsufficientDataError,
    ModelUnavailableError,
    MalformedConditionError,
    ModelNotFoundError,
)

__all__ = [
    # Main engine
    "ScholarshipMatchingEngine",
    "check_eligibility",

    # Components
    "EligibilityEngine",
    "FeatureExtractor",
    "ModelTrainer",
    "ModelRegistry",
    "SqlModelRepository",
    "PredictionService",
    "InMemoryApplicantHistory",
    "TrainingConfig",
    "load_training_config",

    # Contracts
    "ApplicantProfile",
    "ScholarshipCriteria",
    "CustomCondition",
    "Scholarship",
    "UploadedDocument",
    "ApplicationOutcome",
    "CheckResult",
    "EligibilityResult",
    "ModelScope",
    "TrainingMetrics",
    "TrainingStats",
    "TrainedModelRecord",
    "ScholarshipTrainingResult",
    "TrainingDataStats",
    "FeatureContribution",
    "FactorGroup",
    "PredictionResult",

    # Enums & constants
    "ApplicationStatus",
    "Importance",
    "ModelType",
    "FEATURE_NAMES",

    # Errors
    "ScholarshipMatchingError",
    "InsufficientDataError",
    "ModelUnavailableError",
    "MalformedConditionError",
    "ModelNotFoundError",
]
