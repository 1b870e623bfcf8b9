import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Float, Boolean, Text, DateTime, JSON, Index

from .base import Base


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TrainedModelRow(Base):
    __tablename__ = "scholarship_trained_models"

    id = Column(String(32), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    version = Column(String)
    model_type = Column(String, nullable=False)  # global / scholarship_specific
    scholarship_id = Column(String, nullable=True, index=True)
    scope_key = Column(String, nullable=False, index=True)  # "global" / "scholarship_<id>"
    is_active = Column(Boolean, nullable=False, default=False)
    weights = Column(JSON, nullable=False)
    bias = Column(Float, nullable=False, default=0.0)
    metrics = Column(JSON)
    training_stats = Column(JSON)
    training_config = Column(JSON)
    feature_importance = Column(JSON)
    trained_by = Column(String)
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        # at most one active model per scope
        Index(
            "uq_trained_models_active_scope",
            "scope_key",
            unique=True,
            sqlite_where=(is_active == True),  # noqa: E712
            postgresql_where=(is_active == True),  # noqa: E712
        ),
    )
