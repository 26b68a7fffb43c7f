import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from task_evaluator.core.config import Settings, settings as default_settings
from task_evaluator.core.db import create_tables, make_engine, make_session_factory
from task_evaluator.core.errors import EvaluationError, StorageError
from task_evaluator.core.logging import configure_logging
from task_evaluator.api.evaluations import router as evaluations_router
from task_evaluator.services.ai_evaluator import GeminiEvaluator, make_client
from task_evaluator.services.evaluation_store import EvaluationStore
from task_evaluator.services.orchestrator import EvaluationOrchestrator
from task_evaluator.services.request_builder import RequestBuilder
from task_evaluator.services.text_extractor import TextExtractor

logger = logging.getLogger(__name__)

def envelope(status_code: int, error: str, details=None) -> JSONResponse:
    body = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)

def build_orchestrator(cfg: Settings, engine) -> EvaluationOrchestrator:
    store = EvaluationStore(make_session_factory(engine))
    builder = RequestBuilder(TextExtractor(language=cfg.ocr_language))
    evaluator = GeminiEvaluator(
        make_client(cfg.gemini_api_key),
        model_name=cfg.gemini_model,
        timeout=cfg.ai_timeout_seconds,
        temperature=cfg.ai_temperature,
    )
    return EvaluationOrchestrator(builder, evaluator, store)

def create_app(orchestrator: EvaluationOrchestrator | None = None, cfg: Settings = default_settings) -> FastAPI:
    configure_logging(cfg.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if orchestrator is not None:
            yield
            return

        engine = make_engine(cfg.database_url)
        create_tables(engine)
        app.state.orchestrator = build_orchestrator(cfg, engine)
        logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))
        try:
            yield
        finally:
            logger.info("Shutting down, disposing database engine")
            engine.dispose()

    app = FastAPI(title="Task Evaluator API", lifespan=lifespan)
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[cfg.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(EvaluationError)
    async def evaluation_error_handler(request: Request, exc: EvaluationError):
        return envelope(exc.status_code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        messages = [err.get("msg", "Invalid value") for err in exc.errors()]
        return envelope(400, "Invalid input data.", messages)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            return envelope(404, "Endpoint not found. Please check the URL and HTTP method.")
        return envelope(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        message = str(exc) if cfg.is_development else "Internal server error."
        return envelope(500, message)

    app.include_router(evaluations_router)

    @app.get("/health")
    async def health(request: Request):
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": cfg.environment,
        }
        try:
            await request.app.state.orchestrator.check_database()
        except StorageError:
            logger.error("Health check: database connection failed")
            return JSONResponse(
                status_code=500,
                content={"status": "ERROR", "database": "Disconnected", "error": "Database connection failed", **payload},
            )
        return {"status": "OK", "database": "Connected", **payload}

    return app

app = create_app()
