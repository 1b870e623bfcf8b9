"""
Scholarship Matching Engine

Facade wiring the eligibility engine, feature extractor, trainer, model registry
and prediction service together. This is the primary entry point for callers.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional

from sqlalchemy.orm import sessionmaker

from .config import TrainingConfig, load_training_config
from .contracts import (
    ApplicantProfile,
    ApplicationOutcome,
    EligibilityResult,
    ModelScope,
    PredictionResult,
    Scholarship,
    ScholarshipCriteria,
    ScholarshipTrainingResult,
    TrainedModelRecord,
    TrainingDataStats,
)
from .eligibility import EligibilityEngine
from .features import FeatureExtractor
from .model_store import ModelRegistry, SqlModelRepository
from .predictor import ApplicantHistory, PredictionService
from .trainer import ModelTrainer

logger = logging.getLogger(__name__)


class ScholarshipMatchingEngine:
    """
    Main engine combining eligibility checks, model training and prediction.

    Training flow:
    1. Caller supplies historical outcomes for a scope
    2. ModelTrainer runs k-fold cross-validated logistic regression
    3. ModelRegistry stores the model and activates it for its scope

    Prediction flow:
    1. ModelRegistry selects the scholarship model, else the global model
    2. FeatureExtractor scores the applicant (eligibility included)
    3. PredictionService adjusts for history and explains the result
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        config: Optional[TrainingConfig] = None,
        history: Optional[ApplicantHistory] = None,
    ):
        """
        Initialize the matching engine.

        Args:
            session_factory: sessionmaker for model storage. If None, uses db.SessionLocal.
            config: Training configuration. If None, loaded from the environment.
            history: Prior-outcome source for probability adjustment. Callers must
                inject one for the history nudge to apply; if None, every applicant
                is treated as having no prior outcomes.
        """
        self.config = config or load_training_config()
        self.eligibility = EligibilityEngine()
        self.extractor = FeatureExtractor(self.eligibility)
        self.registry = ModelRegistry(
            SqlModelRepository(session_factory),
            ttl_seconds=self.config.model_cache_ttl_seconds,
        )
        self.trainer = ModelTrainer(self.registry, self.extractor, self.config)
        self.predictor = PredictionService(self.registry, self.extractor, history)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Eligibility & prediction
    # ------------------------------------------------------------------

    def check_eligibility(self, applicant: ApplicantProfile, criteria: ScholarshipCriteria) -> EligibilityResult:
        return self.eligibility.check(applicant, criteria)

    def predict(self, applicant: ApplicantProfile, scholarship: Scholarship) -> PredictionResult:
        return self.predictor.predict(applicant, scholarship)

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def train_global_model(self, outcomes: List[ApplicationOutcome], trained_by: Optional[str] = None) -> TrainedModelRecord:
        return self.trainer.train_global_model(outcomes, trained_by=trained_by)

    def train_scholarship_model(
        self,
        scholarship_id: str,
        outcomes: List[ApplicationOutcome],
        trained_by: Optional[str] = None,
    ) -> TrainedModelRecord:
        return self.trainer.train_scholarship_model(scholarship_id, outcomes, trained_by=trained_by)

    def train_all_scholarship_models(
        self,
        outcomes: List[ApplicationOutcome],
        trained_by: Optional[str] = None,
    ) -> List[ScholarshipTrainingResult]:
        return self.trainer.train_all_scholarship_models(outcomes, trained_by=trained_by)

    def get_training_stats(self, outcomes: List[ApplicationOutcome]) -> TrainingDataStats:
        return self.trainer.get_training_stats(outcomes)

    def submit_global_training(self, outcomes: List[ApplicationOutcome], trained_by: Optional[str] = None) -> Future:
        """Run global training on the background worker; returns a Future."""
        return self._training_executor().submit(self.train_global_model, list(outcomes), trained_by)

    def submit_scholarship_training(
        self,
        scholarship_id: str,
        outcomes: List[ApplicationOutcome],
        trained_by: Optional[str] = None,
    ) -> Future:
        return self._training_executor().submit(
            self.train_scholarship_model, scholarship_id, list(outcomes), trained_by
        )

    def _training_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                # one background run at a time
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="scholarship-training")
            return self._executor

    def shutdown(self, wait: bool = True) -> None:
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=wait)
                self._executor = None

    # ------------------------------------------------------------------
    # Model administration
    # ------------------------------------------------------------------

    def list_models(self, scope: Optional[ModelScope] = None, active_only: bool = False) -> List[TrainedModelRecord]:
        return self.registry.list_models(scope, active_only=active_only)

    def get_active_model(self, scope: ModelScope) -> Optional[TrainedModelRecord]:
        return self.registry.get_active(scope)

    def activate_model(self, model_id: str) -> TrainedModelRecord:
        return self.registry.activate_model(model_id)

    def deactivate_model(self, model_id: str) -> TrainedModelRecord:
        return self.registry.deactivate(model_id)

