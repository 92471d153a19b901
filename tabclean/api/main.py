from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from typing import Optional
import logging

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
import uvicorn

from tabclean.api.schemas import (
    ErrorResponse,
    HealthResponse,
    LabelPolicy,
    OutlierPolicy,
    PreprocessRequest,
    PreprocessResponse,
)
from tabclean.config import Config, get_config
from tabclean.delegate import RemoteCleaner
from tabclean.exceptions import (
    CleaningError,
    DelegateNotConfigured,
    InputTooLargeError,
    InvalidInputError,
    PipelineError,
)
from tabclean.pipeline import CleansingPipeline
from tabclean.utils.logging_config import configure_third_party_logging, setup_logging

logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_third_party_logging()
    logger.info("Cleaning API started")
    yield


def get_settings() -> Config:
    """Application configuration (overridable in tests)"""
    return get_config()


settings = get_settings()

# Initialize FastAPI app
app = FastAPI(
    title="Tabular Cleaning API",
    description="Imputation, outlier resolution, standardisation and categorical encoding for uploaded CSV data",
    version="1.0.0",
    lifespan=lifespan,
)

if settings.api.ENABLE_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(CleaningError)
async def cleaning_error_handler(request: Request, exc: CleaningError):
    if exc.status_code >= 500:
        logger.error(f"{request.url.path} failed: {exc.message} ({exc.details})")
    else:
        logger.warning(f"{request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request", "details": str(exc.errors())},
    )


def _check_size(csv_content: str, config: Config):
    size = len(csv_content.encode('utf-8'))
    limit = config.data_validation.MAX_REQUEST_SIZE
    if size > limit:
        raise InputTooLargeError(f"CSV content too large: {size} bytes > {limit} bytes")


async def _run_cleaning(csv_content: str, config: Config, outlier_policy: Optional[str] = None,
                        label_policy: Optional[str] = None, has_header: Optional[bool] = None,
                        include_data: bool = True) -> dict:
    """Clean one dataset; each call gets its own pipeline run"""
    _check_size(csv_content, config)

    overrides = {}
    if outlier_policy is not None:
        overrides["OUTLIER_POLICY"] = outlier_policy
    if label_policy is not None:
        overrides["LABEL_POLICY"] = label_policy

    pipeline = CleansingPipeline(replace(config.cleaning, **overrides))
    result = await run_in_threadpool(pipeline.run_csv, csv_content, has_header)

    if not result.ok:
        raise PipelineError("Cleansing pipeline failed", details="; ".join(result.errors))

    return result.to_response(include_data=include_data)


@app.get("/health", response_model=HealthResponse)
async def health_check(config: Config = Depends(get_settings)):
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now().isoformat(),
        delegate_configured=bool(config.delegate.URL),
    )


@app.post("/api/preprocess", response_model=PreprocessResponse, response_model_exclude_none=True,
          responses=ERROR_RESPONSES)
async def preprocess(request: PreprocessRequest, config: Config = Depends(get_settings)):
    """Clean CSV text sent as JSON"""
    return await _run_cleaning(
        request.csv_content,
        config,
        outlier_policy=request.outlier_policy,
        label_policy=request.label_policy,
        has_header=request.has_header,
        include_data=request.include_data,
    )


@app.post("/preprocess", response_model=PreprocessResponse, response_model_exclude_none=True,
          responses=ERROR_RESPONSES)
async def preprocess_upload(
    file: UploadFile = File(...),
    outlier_policy: Optional[OutlierPolicy] = Form(None),
    label_policy: Optional[LabelPolicy] = Form(None),
    has_header: Optional[bool] = Form(None),
    config: Config = Depends(get_settings),
):
    """Clean an uploaded CSV file"""
    content = await file.read()
    if not content:
        raise InvalidInputError("Uploaded file is empty")

    try:
        csv_content = content.decode('utf-8')
    except UnicodeDecodeError as e:
        raise InvalidInputError("Uploaded file is not UTF-8 text", details=str(e))

    return await _run_cleaning(
        csv_content,
        config,
        outlier_policy=outlier_policy,
        label_policy=label_policy,
        has_header=has_header,
    )


@app.post("/api/preprocess/delegate", response_model=PreprocessResponse, response_model_exclude_none=True,
          responses={**ERROR_RESPONSES, 502: {"model": ErrorResponse}, 503: {"model": ErrorResponse}})
async def preprocess_delegate(request: PreprocessRequest, config: Config = Depends(get_settings)):
    """Forward the dataset to the configured external cleaning service"""
    if not config.delegate.URL:
        raise DelegateNotConfigured("No cleaning delegate configured")

    _check_size(request.csv_content, config)

    cleaner = RemoteCleaner(config.delegate.URL, timeout=config.delegate.TIMEOUT)
    response = await run_in_threadpool(
        cleaner.clean,
        request.csv_content,
        request.outlier_policy,
        request.label_policy,
        request.has_header,
        request.include_data,
    )
    return response


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Tabular Cleaning API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    setup_logging(log_level=settings.effective_log_level(), log_dir=str(settings.paths.LOGS_DIR))
    uvicorn.run(
        "tabclean.api.main:app",
        host=settings.api.DEFAULT_HOST,
        port=settings.api.DEFAULT_PORT,
        workers=settings.api.WORKERS,
        log_level="info"
    )
