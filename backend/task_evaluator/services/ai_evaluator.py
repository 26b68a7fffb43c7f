"""
Scores a submission with Gemini.

The model is asked for a bare JSON object, but replies are treated as
untrusted text: the first ``{...}`` span is cut out, parsed, and validated
before anything is returned. Transport failures and malformed replies are
reported as different errors because only the former are worth retrying.
"""

import asyncio
import json
import logging
import math
from typing import Any

from google import genai
from google.genai import types

from task_evaluator.core.errors import AIProtocolError, AIServiceError
from task_evaluator.schemas.evaluation import AIVerdict, EvaluationRequest, Modality

logger = logging.getLogger(__name__)

MIN_SCORE = 0
MAX_SCORE = 10

EVALUATION_RUBRIC = """You are an expert code reviewer working inside a task evaluation platform.

The user is building a frontend or full-stack task with Vite, React, TypeScript and Tailwind CSS.
They submitted a task name and either raw code (usually TypeScript/React JSX) or a screenshot
of their code, which has been converted to text with OCR.

Evaluate the submission and return:
1. A score out of 10 for how well the code meets the task objective and its overall quality.
2. Detailed, constructive feedback on code quality and task completion covering:
   - React component structure (hooks, state, reusability)
   - TypeScript usage (strong typing, interfaces, avoiding 'any')
   - Tailwind CSS implementation (utility-first classes, responsiveness)
   - Logic and readability (efficiency, naming, comments, error handling)
   - Task fulfillment (does it meet the stated goals?)

If the code is incomplete, does not compile, or the extracted text is garbled, still give
helpful and specific advice on what to fix rather than only calling it invalid.

Your response MUST be ONLY a JSON object of exactly this shape:

{"score": 7, "feedback": "State is mutated directly in one place and prop types are missing. Tailwind classes are well used ..."}

Do not write any text before or after the JSON object and do not wrap it in markdown fences.
"""


def build_prompt(request: EvaluationRequest) -> str:
    if request.modality == Modality.IMAGE:
        label = "User's Submission (Extracted from Image)"
    else:
        label = "User's Submission (Raw Code)"
    return (
        f'Task Name: "{request.task_name}"\n\n'
        f"{label}:\n```typescript\n{request.content}\n```\n\n"
        f"{EVALUATION_RUBRIC}"
    )


def find_json_span(text: str) -> str | None:
    """Return the first balanced ``{...}`` span in ``text``, or None."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    # unbalanced: take everything up to the last closing brace
    end = text.rfind("}")
    if end > start:
        return text[start : end + 1]
    return None


def normalize_score(raw: float) -> int:
    # clamp first so huge integers never reach float arithmetic, then round half up
    clamped = max(MIN_SCORE, min(MAX_SCORE, raw))
    return math.floor(clamped + 0.5)


def parse_verdict(text: str) -> AIVerdict:
    span = find_json_span(text)
    if span is None:
        raise AIProtocolError("AI returned an invalid response format (could not find JSON).")

    try:
        data: Any = json.loads(span)
    except json.JSONDecodeError as e:
        raise AIProtocolError(f"AI response JSON could not be parsed: {e.msg}.") from e

    if not isinstance(data, dict):
        raise AIProtocolError("AI response JSON is not an object.")

    score = data.get("score")
    feedback = data.get("feedback")
    # bool is an int subclass; JSON true/false is not a score
    if (
        isinstance(score, bool)
        or not isinstance(score, (int, float))
        or (isinstance(score, float) and not math.isfinite(score))
    ):
        raise AIProtocolError("Invalid evaluation response structure from AI: missing or non-numeric score.")
    if not isinstance(feedback, str) or not feedback.strip():
        raise AIProtocolError("Invalid evaluation response structure from AI: missing feedback.")

    return AIVerdict(score=normalize_score(score), feedback=feedback.strip())


def make_client(api_key: str) -> genai.Client:
    if not api_key:
        raise AIServiceError("GEMINI_API_KEY is not configured.")
    return genai.Client(api_key=api_key)


class GeminiEvaluator:
    def __init__(
        self,
        client: genai.Client,
        model_name: str = "gemini-2.0-flash",
        timeout: float = 60.0,
        temperature: float = 0.2,
    ):
        self.client = client
        self.model_name = model_name
        self.timeout = timeout
        self.temperature = temperature

    async def _generate(self, prompt: str) -> str:
        try:
            resp = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model_name,
                    contents=prompt,
                    config=types.GenerateContentConfig(temperature=self.temperature),
                ),
                timeout=self.timeout,
            )
            return resp.text or ""
        except asyncio.TimeoutError as e:
            raise AIServiceError(f"AI evaluation timed out after {self.timeout:g}s.") from e
        except Exception as e:
            raise AIServiceError(f"AI evaluation failed: {e}") from e

    async def evaluate(self, request: EvaluationRequest) -> AIVerdict:
        prompt = build_prompt(request)
        logger.info("Sending %s submission for %r to %s", request.modality.value, request.task_name, self.model_name)
        text = await self._generate(prompt)
        logger.debug("Raw AI response: %s", text)

        try:
            verdict = parse_verdict(text)
        except AIProtocolError:
            logger.warning("Unparseable AI response for %r: %.500s", request.task_name, text)
            raise
        logger.info("AI scored %r at %d/10", request.task_name, verdict.score)
        return verdict
