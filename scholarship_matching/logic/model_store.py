"""
Model Store & Selection

SqlModelRepository persists TrainedModelRecord rows through SQLAlchemy and swaps
the active model of a scope in a single transaction.

ModelRegistry wraps the repository with a read-through cache of active models
keyed by scope. Its write methods are the only way to change activation, and
each one evicts the affected cache entry in the same call.

Selection for a scholarship:
1. Active scholarship-specific model for that scholarship
2. Active global model
3. ModelUnavailableError
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import sessionmaker

from db import SessionLocal, get_db
from ..models import TrainedModelRow
from .contracts import ModelScope, TrainedModelRecord, TrainingMetrics, TrainingStats
from .constants import MODEL_CACHE_TTL_SECONDS
from .exceptions import ModelNotFoundError, ModelUnavailableError

logger = logging.getLogger(__name__)


# =============================================================================
# ROW <-> RECORD MAPPING
# =============================================================================

def record_to_row(record: TrainedModelRecord) -> TrainedModelRow:
    return TrainedModelRow(
        name=record.name,
        version=record.version,
        model_type=record.scope.model_type,
        scholarship_id=record.scope.scholarship_id,
        scope_key=record.scope.key,
        is_active=record.is_active,
        weights=dict(record.weights),
        bias=record.bias,
        metrics=record.metrics.model_dump(),
        training_stats=record.training_stats.model_dump(),
        training_config=dict(record.training_config),
        feature_importance=dict(record.feature_importance),
        trained_by=record.trained_by,
        notes=record.notes,
    )


def row_to_record(row: TrainedModelRow) -> TrainedModelRecord:
    return TrainedModelRecord(
        model_id=row.id,
        name=row.name,
        version=row.version or "",
        scope=ModelScope(model_type=row.model_type, scholarship_id=row.scholarship_id),
        weights=row.weights or {},
        bias=row.bias or 0.0,
        metrics=TrainingMetrics(**(row.metrics or {})),
        training_stats=TrainingStats(**(row.training_stats or {})),
        training_config=row.training_config or {},
        feature_importance=row.feature_importance or {},
        is_active=bool(row.is_active),
        created_at=row.created_at,
        trained_by=row.trained_by,
        notes=row.notes,
    )


# =============================================================================
# REPOSITORY
# =============================================================================

class SqlModelRepository:
    """
    SQLAlchemy-backed storage of trained models.

    Args:
        session_factory: sessionmaker to use (defaults to db.SessionLocal)
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory or SessionLocal
        self._write_lock = threading.Lock()

    def save_and_activate(self, record: TrainedModelRecord) -> TrainedModelRecord:
        """Insert `record` as the active model of its scope, deactivating the rest."""
        with self._write_lock, get_db(self.session_factory) as db:
            self._deactivate_scope(db, record.scope.key)
            row = record_to_row(record)
            row.is_active = True
            db.add(row)
            db.flush()
            stored = row_to_record(row)
        logger.info(f"💾 Stored model {stored.model_id} as active for scope '{record.scope.key}'")
        return stored

    def activate(self, model_id: str) -> TrainedModelRecord:
        """Re-activate an existing model, deactivating the others of its scope."""
        with self._write_lock, get_db(self.session_factory) as db:
            row = db.get(TrainedModelRow, model_id)
            if row is None:
                raise ModelNotFoundError(model_id)
            self._deactivate_scope(db, row.scope_key, exclude_id=row.id)
            row.is_active = True
            db.flush()
            return row_to_record(row)

    def deactivate(self, model_id: str) -> TrainedModelRecord:
        with self._write_lock, get_db(self.session_factory) as db:
            row = db.get(TrainedModelRow, model_id)
            if row is None:
                raise ModelNotFoundError(model_id)
            row.is_active = False
            db.flush()
            return row_to_record(row)

    def get(self, model_id: str) -> TrainedModelRecord:
        with get_db(self.session_factory) as db:
            row = db.get(TrainedModelRow, model_id)
            if row is None:
                raise ModelNotFoundError(model_id)
            return row_to_record(row)

    def get_active(self, scope: ModelScope) -> Optional[TrainedModelRecord]:
        with get_db(self.session_factory) as db:
            row = (
                db.query(TrainedModelRow)
                .filter(TrainedModelRow.scope_key == scope.key, TrainedModelRow.is_active.is_(True))
                .order_by(TrainedModelRow.created_at.desc())
                .first()
            )
            return row_to_record(row) if row is not None else None

    def list_models(self, scope: Optional[ModelScope] = None, active_only: bool = False) -> List[TrainedModelRecord]:
        with get_db(self.session_factory) as db:
            query = db.query(TrainedModelRow)
            if scope is not None:
                query = query.filter(TrainedModelRow.scope_key == scope.key)
            if active_only:
                query = query.filter(TrainedModelRow.is_active.is_(True))
            return [row_to_record(r) for r in query.order_by(TrainedModelRow.created_at.desc()).all()]

    @staticmethod
    def _deactivate_scope(db, scope_key: str, exclude_id: Optional[str] = None) -> None:
        query = db.query(TrainedModelRow).filter(
            TrainedModelRow.scope_key == scope_key,
            TrainedModelRow.is_active.is_(True),
        )
        if exclude_id is not None:
            query = query.filter(TrainedModelRow.id != exclude_id)
        query.update({TrainedModelRow.is_active: False}, synchronize_session=False)
        # deactivation must reach the database before the new active row
        db.flush()


# =============================================================================
# REGISTRY (CACHE + SELECTION)
# =============================================================================

class ModelRegistry:
    """
    Read-through cache of active models keyed by scope.

    Args:
        repository: Storage backend (SqlModelRepository or compatible)
        ttl_seconds: Cache entry lifetime; None keeps entries until evicted
        clock: Monotonic time source
    """

    def __init__(
        self,
        repository: SqlModelRepository,
        ttl_seconds: Optional[float] = MODEL_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.repository = repository
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: Dict[str, Tuple[Optional[TrainedModelRecord], float]] = {}
        # bumped on every write so in-flight reads never repopulate stale entries
        self._generations: Dict[str, int] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_active(self, scope: ModelScope) -> Optional[TrainedModelRecord]:
        key = scope.key
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None and not self._expired(cached[1]):
                return cached[0]
            generation = self._generations.get(key, 0)

        record = self.repository.get_active(scope)

        with self._lock:
            if self._generations.get(key, 0) == generation:
                self._cache[key] = (record, self._clock())
        return record

    def select_for_scholarship(self, scholarship_id: Optional[str]) -> TrainedModelRecord:
        """
        Scholarship-specific model if active, else the global model.

        Raises:
            ModelUnavailableError: neither scope has an active model
        """
        if scholarship_id:
            specific = self.get_active(ModelScope.for_scholarship(scholarship_id))
            if specific is not None:
                logger.debug(f"Using scholarship-specific model {specific.model_id} for {scholarship_id}")
                return specific

        global_model = self.get_active(ModelScope.global_scope())
        if global_model is not None:
            logger.debug(f"Using global model {global_model.model_id} for {scholarship_id}")
            return global_model

        raise ModelUnavailableError(scholarship_id)

    def list_models(self, scope: Optional[ModelScope] = None, active_only: bool = False) -> List[TrainedModelRecord]:
        return self.repository.list_models(scope, active_only=active_only)

    def get(self, model_id: str) -> TrainedModelRecord:
        return self.repository.get(model_id)

    # ------------------------------------------------------------------
    # Writes (the only activation path)
    # ------------------------------------------------------------------

    def activate(self, record: TrainedModelRecord) -> TrainedModelRecord:
        """Persist a newly trained model as the active model of its scope."""
        with self._lock:
            stored = self.repository.save_and_activate(record)
            self._evict(stored.scope.key)
        return stored

    def activate_model(self, model_id: str) -> TrainedModelRecord:
        with self._lock:
            stored = self.repository.activate(model_id)
            self._evict(stored.scope.key)
        logger.info(f"🔁 Re-activated model {model_id} for scope '{stored.scope.key}'")
        return stored

    def deactivate(self, model_id: str) -> TrainedModelRecord:
        with self._lock:
            stored = self.repository.deactivate(model_id)
            self._evict(stored.scope.key)
        logger.info(f"⏸️ Deactivated model {model_id}")
        return stored

    def clear(self) -> None:
        with self._lock:
            for key in list(self._cache):
                self._evict(key)

    def _evict(self, key: str) -> None:
        self._cache.pop(key, None)
        self._generations[key] = self._generations.get(key, 0) + 1

    def _expired(self, stored_at: float) -> bool:
        if self.ttl_seconds is None:
            return False
        return self._clock() - stored_at > self.ttl_seconds
