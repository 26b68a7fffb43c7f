import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from task_evaluator.core.errors import StorageError
from task_evaluator.models import Evaluation
from task_evaluator.schemas.evaluation import AIVerdict, EvaluationRecord, Modality

logger = logging.getLogger(__name__)

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

def _to_record(row: Evaluation) -> EvaluationRecord:
    return EvaluationRecord(
        id=row.id,
        task_name=row.task_name,
        modality=Modality(row.submission_type),
        code_text=row.code,
        image_reference=row.image_url,
        score=row.score,
        feedback=row.feedback,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )

class EvaluationStore:
    """
    Owns the evaluations table. Records are written once and never updated,
    so each call gets its own session and no locking is needed.
    """

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], datetime] = _utcnow):
        self.session_factory = session_factory
        self.clock = clock

    def create(
        self,
        task_name: str,
        modality: Modality,
        code_text: str | None,
        image_reference: str | None,
        verdict: AIVerdict,
    ) -> EvaluationRecord:
        now = self.clock()
        row = Evaluation(
            id=str(uuid.uuid4()),
            task_name=task_name,
            submission_type=modality.value,
            code=code_text,
            image_url=image_reference,
            score=verdict.score,
            feedback=verdict.feedback,
            created_at=now,
            updated_at=now,
        )
        db: Session = self.session_factory()
        try:
            db.add(row)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to save evaluation for %r: %s", task_name, e)
            raise StorageError("Failed to save the evaluation.") from e
        finally:
            db.close()

        logger.info("Saved evaluation %s (score %d)", row.id, row.score)
        return _to_record(row)

    def list_all(self) -> list[EvaluationRecord]:
        try:
            with self.session_factory() as db:
                rows = db.scalars(select(Evaluation).order_by(Evaluation.created_at.desc())).all()
                return [_to_record(r) for r in rows]
        except SQLAlchemyError as e:
            logger.error("Failed to list evaluations: %s", e)
            raise StorageError("Failed to fetch evaluation history.") from e

    def get_by_id(self, evaluation_id: str) -> EvaluationRecord | None:
        try:
            with self.session_factory() as db:
                row = db.get(Evaluation, evaluation_id)
                return _to_record(row) if row else None
        except SQLAlchemyError as e:
            logger.error("Failed to fetch evaluation %s: %s", evaluation_id, e)
            raise StorageError("Failed to fetch the evaluation.") from e

    def ping(self) -> None:
        try:
            with self.session_factory() as db:
                db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StorageError("Database connection failed.") from e
