from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile

from task_evaluator.core.config import settings
from task_evaluator.core.errors import InvalidSubmission
from task_evaluator.schemas.evaluation import (
    APIResponse,
    CodeSubmission,
    EvaluationRecord,
    ImageSubmission,
    Modality,
)
from task_evaluator.services.orchestrator import EvaluationOrchestrator
from task_evaluator.utils.uploads import read_image_upload

router = APIRouter(prefix="/api", tags=["evaluations"])

def get_orchestrator(request: Request) -> EvaluationOrchestrator:
    return request.app.state.orchestrator

@router.post("/evaluate", response_model=APIResponse[EvaluationRecord])
async def evaluate(
    taskName: str = Form(""),
    submissionType: str = Form(""),  # "code" or "image"
    code: str | None = Form(None),
    image: UploadFile | None = File(None),
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator),
):
    problems = []
    if not taskName.strip():
        problems.append("Task name is required.")
    if submissionType not in (Modality.CODE.value, Modality.IMAGE.value):
        problems.append("Submission type must be 'code' or 'image'.")
    if problems:
        raise InvalidSubmission("Invalid input data.", details=problems)

    if submissionType == Modality.CODE.value:
        if not code or not code.strip():
            raise InvalidSubmission("Code content is required for code submissions.")
        submission = CodeSubmission(task_name=taskName, code_text=code)
    else:
        if image is None:
            raise InvalidSubmission("An image file is required for image submissions.")
        raw = await read_image_upload(image, settings.max_upload_bytes)
        submission = ImageSubmission(task_name=taskName, image_bytes=raw, filename=image.filename or "upload.png")

    record = await orchestrator.evaluate_task(submission)
    return APIResponse[EvaluationRecord](success=True, data=record)

@router.get("/evaluations", response_model=APIResponse[list[EvaluationRecord]])
async def list_evaluations(orchestrator: EvaluationOrchestrator = Depends(get_orchestrator)):
    records = await orchestrator.list_evaluations()
    return APIResponse[list[EvaluationRecord]](success=True, data=records)

@router.get("/evaluations/{evaluation_id}", response_model=APIResponse[EvaluationRecord])
async def get_evaluation(evaluation_id: str, orchestrator: EvaluationOrchestrator = Depends(get_orchestrator)):
    record = await orchestrator.get_evaluation(evaluation_id)
    if not record:
        raise HTTPException(404, "Evaluation not found.")
    return APIResponse[EvaluationRecord](success=True, data=record)
