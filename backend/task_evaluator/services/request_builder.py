import asyncio
import logging
import time
from pathlib import PurePath

from task_evaluator.core.errors import InvalidSubmission
from task_evaluator.schemas.evaluation import (
    CodeSubmission,
    EvaluationRequest,
    ImageSubmission,
    Modality,
    Submission,
)
from task_evaluator.services.text_extractor import TextExtractor

logger = logging.getLogger(__name__)

def image_reference_for(filename: str, now_ms: int | None = None) -> str:
    """
    Placeholder locator kept on the record for image submissions.
    Nothing is uploaded anywhere; this only names the file that was evaluated.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    name = PurePath(filename).name or "upload"
    return f"uploaded-image-{now_ms}-{name}"

class RequestBuilder:
    def __init__(self, extractor: TextExtractor):
        self.extractor = extractor

    async def build(self, submission: Submission) -> EvaluationRequest:
        task_name = submission.task_name.strip()
        if not task_name:
            raise InvalidSubmission("Task name is required.")

        if isinstance(submission, CodeSubmission):
            content = submission.code_text.strip()
            if not content:
                raise InvalidSubmission("Code content is required for code submissions.")
            return EvaluationRequest(task_name=task_name, modality=Modality.CODE, content=content)

        if isinstance(submission, ImageSubmission):
            suffix = PurePath(submission.filename).suffix or ".png"
            text = await asyncio.to_thread(self.extractor.extract, submission.image_bytes, suffix)
            if not text.strip():
                raise InvalidSubmission(
                    "OCR failed to extract readable content from the image. Please try a clearer image."
                )
            return EvaluationRequest(
                task_name=task_name,
                modality=Modality.IMAGE,
                content=text.strip(),
                image_reference=image_reference_for(submission.filename),
            )

        raise InvalidSubmission("Invalid submission type provided.")
