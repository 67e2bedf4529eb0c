from __future__ import annotations

import json
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import GatewayConfig
from .errors import InvalidRequestError, ProcessingFailure
from .gateway import CompletionGateway
from .http_security import install_middlewares
from .logging import configure_logging
from .metrics import maybe_start_metrics, server_errors_total
from .schemas import (
    INVALID_BODY_MESSAGE,
    PROCESSING_FAILED_MESSAGE,
    ChatGPTRequest,
    ChatGPTResponse,
    HealthResponse,
    make_chatgpt_response,
    make_error_response,
)

log = structlog.get_logger()

CHATGPT_PATH = "/api/chatgpt"


def _validation_summary(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or INVALID_BODY_MESSAGE


def _is_json_content_type(content_type: str | None) -> bool:
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


async def read_chatgpt_request(request: Request) -> ChatGPTRequest:
    """
    Parse the request body the way a JSON body parser would.

    Bodies that are not declared as JSON, or are empty, are treated as ``{}``
    so they fall through to the missing-parameters check.
    """
    if not _is_json_content_type(request.headers.get("content-type")):
        return ChatGPTRequest()
    raw = await request.body()
    if not raw.strip():
        return ChatGPTRequest()
    try:
        payload = json.loads(raw)
    except ValueError as e:
        raise RequestValidationError(
            [{"type": "json_invalid", "loc": ("body",), "msg": f"JSON decode error: {e}"}]
        ) from e
    try:
        return ChatGPTRequest.model_validate(payload)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_input=False)) from e


def create_app(cfg: GatewayConfig | None = None, gateway: CompletionGateway | None = None) -> FastAPI:
    cfg = cfg or GatewayConfig()
    configure_logging(
        level=cfg.log_level,
        fmt=cfg.log_format,
        secrets=[s for s in (cfg.openai_api_key,) if s],
    )
    gateway = gateway or CompletionGateway(cfg)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        maybe_start_metrics(enable=cfg.enable_metrics, bind=cfg.metrics_bind, port=cfg.metrics_port)
        log.info(
            "server_started",
            port=cfg.port,
            deployment_host=cfg.deployment_host,
            model=cfg.model,
            api_key_configured=bool(cfg.openai_api_key),
        )
        try:
            yield
        finally:
            await gateway.close()

    app = FastAPI(
        title="jira-chatgpt-gateway",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if cfg.enable_api_docs else None,
        redoc_url="/redoc" if cfg.enable_api_docs else None,
        openapi_url="/openapi.json" if cfg.enable_api_docs else None,
    )
    install_middlewares(app, cfg=cfg)

    @app.exception_handler(InvalidRequestError)
    async def _invalid_request_handler(_request: Request, exc: InvalidRequestError):
        server_errors_total.labels(type="invalid_request").inc()
        return JSONResponse(status_code=400, content=make_error_response(error=str(exc)))

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(_request: Request, exc: RequestValidationError):
        server_errors_total.labels(type="invalid_body").inc()
        return JSONResponse(
            status_code=400,
            content=make_error_response(error=INVALID_BODY_MESSAGE, message=_validation_summary(exc)),
        )

    @app.exception_handler(ProcessingFailure)
    async def _processing_failure_handler(_request: Request, exc: ProcessingFailure):
        server_errors_total.labels(type="processing_failure").inc()
        return JSONResponse(
            status_code=500,
            content=make_error_response(error=PROCESSING_FAILED_MESSAGE, message=str(exc)),
        )

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse()

    @app.post(
        CHATGPT_PATH,
        response_model=ChatGPTResponse,
        openapi_extra={
            "requestBody": {
                "content": {"application/json": {"schema": ChatGPTRequest.model_json_schema(by_alias=True)}},
            }
        },
    )
    async def chatgpt(request: Request) -> ChatGPTResponse:
        req = await read_chatgpt_request(request)
        try:
            result = await gateway.handle(req.to_completion_request())
        except (InvalidRequestError, ProcessingFailure):
            raise
        except Exception as e:
            log.exception("chatgpt_internal_error")
            raise ProcessingFailure(str(e) or e.__class__.__name__) from e

        return make_chatgpt_response(result)

    return app


def main() -> None:  # pragma: no cover
    import uvicorn
    from dotenv import load_dotenv

    load_dotenv()
    cfg = GatewayConfig()
    uvicorn.run("jira_chatgpt.server:create_app", factory=True, host=cfg.bind_address, port=cfg.port)


if __name__ == "__main__":  # pragma: no cover
    main()
