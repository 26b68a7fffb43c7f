"""
Runs one submission through the pipeline:

    Received -> Extracting (images only) -> Building -> Evaluating -> Persisting -> Completed

The first error at any stage ends the run and propagates unchanged. A record
is written only after the AI verdict is in hand, so a failed run leaves
nothing behind.
"""

import asyncio
import logging

from task_evaluator.core.errors import EvaluationError
from task_evaluator.schemas.evaluation import CodeSubmission, EvaluationRecord, Modality, Submission
from task_evaluator.services.ai_evaluator import GeminiEvaluator
from task_evaluator.services.evaluation_store import EvaluationStore
from task_evaluator.services.request_builder import RequestBuilder

logger = logging.getLogger(__name__)

class EvaluationOrchestrator:
    def __init__(self, builder: RequestBuilder, evaluator: GeminiEvaluator, store: EvaluationStore):
        self.builder = builder
        self.evaluator = evaluator
        self.store = store

    async def evaluate_task(self, submission: Submission) -> EvaluationRecord:
        stage = "building"
        if submission.modality == Modality.IMAGE:
            stage = "extracting"
        logger.info("Received %s submission for %r", submission.modality.value, submission.task_name)

        try:
            request = await self.builder.build(submission)

            stage = "evaluating"
            verdict = await self.evaluator.evaluate(request)

            stage = "persisting"
            code_text = submission.code_text if isinstance(submission, CodeSubmission) else None
            record = await asyncio.to_thread(
                self.store.create,
                request.task_name,
                request.modality,
                code_text,
                request.image_reference,
                verdict,
            )
        except EvaluationError as e:
            logger.warning("Evaluation of %r failed while %s: %s", submission.task_name, stage, e.message)
            raise

        logger.info("Completed evaluation %s for %r", record.id, record.task_name)
        return record

    async def list_evaluations(self) -> list[EvaluationRecord]:
        return await asyncio.to_thread(self.store.list_all)

    async def get_evaluation(self, evaluation_id: str) -> EvaluationRecord | None:
        return await asyncio.to_thread(self.store.get_by_id, evaluation_id)

    async def check_database(self) -> None:
        await asyncio.to_thread(self.store.ping)
