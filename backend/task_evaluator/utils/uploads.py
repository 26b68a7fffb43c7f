from fastapi import UploadFile

from task_evaluator.core.errors import InvalidSubmission

ALLOWED_IMAGE_PREFIX = "image/"

async def read_image_upload(file: UploadFile, max_bytes: int) -> bytes:
    """Read an uploaded screenshot, enforcing the content type and size limit."""
    if not (file.content_type or "").startswith(ALLOWED_IMAGE_PREFIX):
        raise InvalidSubmission("Only image files (PNG, JPG, JPEG, GIF) are allowed.")

    # read one byte past the limit so oversized uploads are detected without buffering them whole
    raw = await file.read(max_bytes + 1)
    if len(raw) > max_bytes:
        raise InvalidSubmission(f"Image exceeds the {max_bytes // (1024 * 1024)} MB upload limit.")
    if not raw:
        raise InvalidSubmission("An image file is required for image submissions.")
    return raw
