"""Expose the feature demos over HTTP.

Every route is a thin pass-through to one of the components bundled in
:class:`apps.features_api.FeatureDemos`; the only logic here is decoding the
bare scalar bodies of the ``classify`` routes and mapping component errors to
status codes.  The routes are mounted under ``/api/<prefix>`` where the prefix
comes from ``config/features.yaml``.
"""

from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from apps.concurrency_demo import FanOutError
from apps.features_api import FeatureDemos, feature_index, health_status
from lib.config.features_loader import FeaturesConfig, load_features_config
from lib.contracts.responses import (
    DatabaseConnection,
    DefaultContext,
    ExpensiveResult,
    FeatureIndex,
    HealthStatus,
    Summary,
    ThreadSafetyReport,
)
from lib.contracts.scalars import ScalarTag, coerce_scalar, parse_decimal
from lib.telemetry.logger import configure_logging, get_logger
from lib.utils.validation import NumberFormatError


logger = get_logger(__name__)

router = APIRouter()


def get_demos(request: Request) -> FeatureDemos:
    return request.app.state.demos


async def read_scalar(
    request: Request,
    tag: ScalarTag | None = Query(default=None, alias="type"),
) -> Any:
    """Decode a bare JSON scalar body; an empty body counts as ``null``."""

    raw = await request.body()
    if not raw.strip():
        decoded = None
    else:
        try:
            decoded = json.loads(raw, parse_int=parse_decimal)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=f"Malformed JSON body: {exc}")
    try:
        return coerce_scalar(decoded, tag)
    except ValueError as exc:
        raise HTTPException(status_code=HTTPStatus.UNPROCESSABLE_ENTITY, detail=str(exc))


# ---------------------------------------------------------------------------
# Index and health
# ---------------------------------------------------------------------------

@router.get("", response_model=FeatureIndex)
async def features(request: Request):
    """Static list of the demos and where they live."""

    return feature_index(request.app.state.base_path)


@router.get("/health", response_model=HealthStatus)
async def health(request: Request):
    return health_status(request.app.state.application)


# ---------------------------------------------------------------------------
# Pattern matching
# ---------------------------------------------------------------------------

@router.post("/classify/process", response_class=PlainTextResponse)
async def classify_process(value: Any = Depends(read_scalar), demos: FeatureDemos = Depends(get_demos)) -> str:
    return demos.classifier.process(value)


@router.post("/classify/check-type", response_class=PlainTextResponse)
async def classify_check_type(value: Any = Depends(read_scalar), demos: FeatureDemos = Depends(get_demos)) -> str:
    return demos.classifier.check_type(value)


@router.post("/classify/convert")
async def classify_convert(value: Any = Depends(read_scalar), demos: FeatureDemos = Depends(get_demos)) -> int:
    return demos.classifier.convert(value)


@router.post("/classify/validate", response_class=PlainTextResponse)
async def classify_validate(value: Any = Depends(read_scalar), demos: FeatureDemos = Depends(get_demos)) -> str:
    return demos.classifier.validate(value)


# ---------------------------------------------------------------------------
# Context variables
# ---------------------------------------------------------------------------

@router.get("/context/context", response_class=PlainTextResponse)
def context_bind(
    user_id: str = Query(alias="userId"),
    request_id: str = Query(alias="requestId"),
    tenant_id: str = Query(alias="tenantId"),
    demos: FeatureDemos = Depends(get_demos),
) -> str:
    return demos.context.process_with_context(user_id, request_id, tenant_id)


@router.get("/context/concurrency", response_class=PlainTextResponse)
def context_concurrency(
    user_id: str = Query(alias="userId"),
    propagate: bool = True,
    demos: FeatureDemos = Depends(get_demos),
) -> str:
    """Forked workers see the binding; with ``propagate=false`` bare threads do not."""

    if propagate:
        return demos.context.process_with_concurrency(user_id)
    return demos.context.process_with_bare_threads(user_id)


@router.get("/context/nested", response_class=PlainTextResponse)
def context_nested(demos: FeatureDemos = Depends(get_demos)) -> str:
    return demos.context.nested_scopes()


@router.get("/context/default", response_model=DefaultContext)
def context_default(
    user_id: str | None = Query(default=None, alias="userId"),
    demos: FeatureDemos = Depends(get_demos),
):
    return demos.context.describe_default(user_id)


# ---------------------------------------------------------------------------
# Task groups
# ---------------------------------------------------------------------------

@router.get("/concurrency-demo/user-data", response_class=PlainTextResponse)
async def concurrency_user_data(
    user_id: str = Query(alias="userId"), demos: FeatureDemos = Depends(get_demos)
) -> str:
    return await demos.concurrency.fetch_user_data(user_id)


@router.get("/concurrency-demo/multi-source", response_class=PlainTextResponse)
async def concurrency_multi_source(query: str, demos: FeatureDemos = Depends(get_demos)) -> str:
    return await demos.concurrency.fetch_from_multiple_sources(query)


@router.get("/concurrency-demo/timeout", response_class=PlainTextResponse)
async def concurrency_timeout(
    user_id: str = Query(alias="userId"), demos: FeatureDemos = Depends(get_demos)
) -> str:
    return await demos.concurrency.fetch_with_timeout(user_id)


@router.get("/concurrency-demo/virtual-threads", response_class=PlainTextResponse)
async def concurrency_threads(data: str, demos: FeatureDemos = Depends(get_demos)) -> str:
    return await demos.concurrency.process_with_threads(data)


@router.get("/concurrency-demo/aggregate", response_model=Summary)
async def concurrency_aggregate(category: str, demos: FeatureDemos = Depends(get_demos)):
    return await demos.concurrency.aggregate(category)


# ---------------------------------------------------------------------------
# Deferred values
# ---------------------------------------------------------------------------

@router.get("/deferred/lazy-config", response_class=PlainTextResponse)
def deferred_lazy_config(demos: FeatureDemos = Depends(get_demos)) -> str:
    return demos.deferred.get_lazy_config()


@router.get("/deferred/connection", response_model=DatabaseConnection)
def deferred_connection(demos: FeatureDemos = Depends(get_demos)):
    return demos.deferred.get_connection()


@router.get("/deferred/expensive", response_model=ExpensiveResult)
def deferred_expensive(demos: FeatureDemos = Depends(get_demos)):
    return demos.deferred.get_expensive_result()


@router.get("/deferred/thread-safety", response_model=ThreadSafetyReport)
def deferred_thread_safety(demos: FeatureDemos = Depends(get_demos)):
    return demos.deferred.demonstrate_thread_safety()


# ---------------------------------------------------------------------------
# Package re-exports
# ---------------------------------------------------------------------------

@router.get("/module-imports/info", response_class=PlainTextResponse)
def module_imports_info(demos: FeatureDemos = Depends(get_demos)) -> str:
    return demos.module_imports.describe()


@router.get("/module-imports/example", response_class=PlainTextResponse)
def module_imports_example(demos: FeatureDemos = Depends(get_demos)) -> str:
    return demos.module_imports.example()


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

async def _number_format_error(request: Request, exc: NumberFormatError) -> JSONResponse:
    logger.error("http.number_format_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "error": str(exc)},
    )


async def _fan_out_error(request: Request, exc: FanOutError) -> JSONResponse:
    logger.error("http.fan_out_error", path=request.url.path, operation=exc.operation)
    return JSONResponse(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, content=exc.to_dict())


async def _timeout_error(request: Request, exc: TimeoutError) -> JSONResponse:
    logger.error("http.timeout", path=request.url.path)
    return JSONResponse(
        status_code=HTTPStatus.GATEWAY_TIMEOUT,
        content={"detail": "Operation did not finish before its deadline"},
    )


def create_app(config: FeaturesConfig | None = None, configure_logs: bool = True) -> FastAPI:
    """Build the FastAPI application for ``config`` (loaded from disk if omitted)."""

    config = config or load_features_config()
    if configure_logs:
        configure_logging(config.log_level, config.log_json)

    base_path = f"/api/{config.prefix}"
    app = FastAPI(title=config.app_name)
    app.state.demos = FeatureDemos(config=config.raw)
    app.state.base_path = base_path
    app.state.application = config.app_name
    app.state.settings = config
    app.include_router(router, prefix=base_path)
    app.add_exception_handler(NumberFormatError, _number_format_error)
    app.add_exception_handler(FanOutError, _fan_out_error)
    app.add_exception_handler(TimeoutError, _timeout_error)
    logger.info("http.app_created", base_path=base_path)
    return app


app = create_app()


def main() -> None:
    import uvicorn

    settings: FeaturesConfig = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
