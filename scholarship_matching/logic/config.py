"""
Training Configuration

Hyperparameters for the logistic-regression trainer. Defaults can be overridden
through SCHOLARSHIP_* environment variables (a .env file is honored).
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .constants import MODEL_CACHE_TTL_SECONDS

load_dotenv()


class TrainingConfig(BaseModel):
    learning_rate: float = Field(default=0.1, gt=0)
    epochs: int = Field(default=500, ge=1)
    batch_size: int = Field(default=8, ge=1)
    regularization: float = Field(default=0.0001, ge=0)
    min_samples_global: int = Field(default=50, ge=2)
    min_samples_per_scholarship: int = Field(default=30, ge=2)
    convergence_threshold: float = 0.00001
    early_stopping_patience: int = Field(default=50, ge=1)
    k_folds: int = Field(default=5, ge=2)
    random_seed: int = 42
    initial_weight: float = 0.1
    learning_rate_decay: float = 0.001
    model_cache_ttl_seconds: Optional[float] = MODEL_CACHE_TTL_SECONDS

    class Config:
        protected_namespaces = ()


# Environment variable -> TrainingConfig field
ENV_OVERRIDES = {
    "SCHOLARSHIP_LEARNING_RATE": "learning_rate",
    "SCHOLARSHIP_EPOCHS": "epochs",
    "SCHOLARSHIP_BATCH_SIZE": "batch_size",
    "SCHOLARSHIP_REGULARIZATION": "regularization",
    "SCHOLARSHIP_MIN_SAMPLES_GLOBAL": "min_samples_global",
    "SCHOLARSHIP_MIN_SAMPLES_PER_SCHOLARSHIP": "min_samples_per_scholarship",
    "SCHOLARSHIP_K_FOLDS": "k_folds",
    "SCHOLARSHIP_RANDOM_SEED": "random_seed",
    "SCHOLARSHIP_MODEL_CACHE_TTL": "model_cache_ttl_seconds",
}


def load_training_config(**overrides) -> TrainingConfig:
    """
    Build a TrainingConfig from environment variables plus explicit overrides.

    Explicit keyword overrides win over the environment.
    """
    values = {}
    for env_name, field_name in ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is not None and raw.strip() != "":
            values[field_name] = raw.strip()
    values.update(overrides)
    return TrainingConfig(**values)
