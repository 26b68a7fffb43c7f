import io
import itertools
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from task_evaluator.core.db import create_tables, make_engine, make_session_factory
from task_evaluator.services.ai_evaluator import GeminiEvaluator
from task_evaluator.services.evaluation_store import EvaluationStore
from task_evaluator.services.orchestrator import EvaluationOrchestrator
from task_evaluator.services.request_builder import RequestBuilder
from task_evaluator.services.text_extractor import TextExtractor


def fake_genai_client(reply: str | None = None, side_effect=None):
    """Stand-in for google.genai.Client exposing only aio.models.generate_content."""
    generate = AsyncMock(return_value=SimpleNamespace(text=reply), side_effect=side_effect)
    return SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate)))


@pytest.fixture
def png_bytes():
    buf = io.BytesIO()
    Image.new("RGB", (40, 20), "white").save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def clock():
    """Strictly increasing timestamps, one second apart."""
    start = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    ticks = itertools.count()
    return lambda: start + timedelta(seconds=next(ticks))


@pytest.fixture
def store(clock):
    engine = make_engine("sqlite://")
    create_tables(engine)
    yield EvaluationStore(make_session_factory(engine), clock=clock)
    engine.dispose()


@pytest.fixture
def extractor():
    ext = MagicMock(spec=TextExtractor)
    ext.extract.return_value = "export const Card = () => <div className='p-4' />;"
    return ext


@pytest.fixture
def genai_client():
    return fake_genai_client('{"score": 9, "feedback": "Clean code"}')


@pytest.fixture
def orchestrator(extractor, genai_client, store):
    return EvaluationOrchestrator(
        RequestBuilder(extractor),
        GeminiEvaluator(genai_client, model_name="gemini-test", timeout=5),
        store,
    )
