# Export all scholarship matching models for easy imports
from .base import Base
from .trained_model import TrainedModelRow

__all__ = [
    "Base",
    "TrainedModelRow",
]
