"""
FastAPI layer exposing the photo pipelines.

Endpoints:
 - GET /health
 - POST /upload
 - DELETE /delete-photos
 - GET /presigned-url
 - POST /presigned-urls
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, File, Form, Header, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .core.access import bearer_token
from .core.config import Settings, get_settings
from .core.exceptions import MalformedRequest, MissingCredential, PhotoPipelineError
from .core.factories import PipelineContainer, ProcessingPipelineFactory
from .core.logging_config import LOGGER_NAME, get_logger, setup_logger
from .core.models import BatchRequest, MainSelector, RawItem

logger = get_logger("photo-pipeline.api")


def _upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    stream = upload.file
    stream.seek(0, 2)
    size = stream.tell()
    stream.seek(0)
    return size


def _raw_items(images: Optional[List[UploadFile]]) -> List[RawItem]:
    return [
        RawItem(stream=upload.file, original_name=upload.filename or "upload", size_bytes=_upload_size(upload))
        for upload in images or []
    ]


def _describe_errors(exc: RequestValidationError) -> str:
    """Render the first parameter error as ``Invalid <field>: <reason>``."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "header")]
    field = loc[0] if loc else "request"
    return f"Invalid {field}: {first.get('msg', 'malformed value')}"


async def _json_body(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    try:
        body = json.loads(raw or b"null")
    except ValueError:
        raise MalformedRequest("Invalid JSON in request body") from None
    if not isinstance(body, dict):
        raise MalformedRequest("Invalid JSON in request body")
    return body


def get_pipelines(request: Request) -> PipelineContainer:
    return request.app.state.pipelines


def create_app(
    container: Optional[PipelineContainer] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the application.

    When ``container`` is omitted the pipelines are created from settings at
    startup, so importing this module never touches S3 or Redis.
    """
    settings = settings or (container.settings if container else get_settings())
    setup_logger(LOGGER_NAME, level=settings.log_level, format_type=settings.log_format)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "pipelines", None) is None:
            app.state.pipelines = ProcessingPipelineFactory.create_pipelines(settings)
            logger.info(f"Pipelines ready (bucket={settings.s3_bucket})")
        yield

    app = FastAPI(title="Photo Pipeline Service", version="0.1.0", lifespan=lifespan)
    app.state.pipelines = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Authorization"],
    )

    @app.exception_handler(PhotoPipelineError)
    async def pipeline_error_handler(request: Request, exc: PhotoPipelineError) -> JSONResponse:
        status_code = getattr(exc, "status_code", 500)
        log = logger.error if status_code >= 500 else logger.warning
        log(f"{request.method} {request.url.path} rejected ({status_code}): {exc}")
        return JSONResponse(status_code=status_code, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Parameter parsing runs before the route body, so the credential check
        # is repeated here to keep 401 ahead of 400.
        if bearer_token(request.headers.get("authorization")) is None:
            return await pipeline_error_handler(
                request, MissingCredential("Missing Authorization header")
            )
        return await pipeline_error_handler(request, MalformedRequest(_describe_errors(exc)))

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/upload")
    def upload(
        images: Optional[List[UploadFile]] = File(None),
        entity_type: Optional[str] = Form(None),
        entity_id: Optional[str] = Form(None),
        access: Optional[str] = Form(None),
        is_main: Optional[str] = Form(None),
        main_index: Optional[str] = Form(None),
        authorization: Optional[str] = Header(None),
        pipelines: PipelineContainer = Depends(get_pipelines),
    ):
        request = BatchRequest(
            items=_raw_items(images),
            entity_type=entity_type,
            entity_id=entity_id,
            access_tier=access or "public",
            main_selector=MainSelector.from_form(is_main=is_main, main_index=main_index),
        )
        outcome = pipelines.upload.run(bearer_token(authorization), request)

        body = outcome.to_response()
        if outcome.dispatch_failed:
            body["error"] = f"dispatchFailed: {outcome.dispatch_error}"
            return JSONResponse(status_code=502, content=body)
        return body

    @app.delete("/delete-photos")
    async def delete_photos(
        request: Request,
        authorization: Optional[str] = Header(None),
        pipelines: PipelineContainer = Depends(get_pipelines),
    ):
        auth = pipelines.deletion.authorize(bearer_token(authorization))
        body = await _json_body(request)
        outcome = await run_in_threadpool(
            pipelines.deletion.delete,
            auth,
            body.get("entity_type"),
            body.get("entity_id"),
            body.get("file_urls"),
        )
        return outcome.to_response()

    @app.get("/presigned-url")
    def presigned_url(
        key: Optional[str] = Query(None),
        authorization: Optional[str] = Header(None),
        pipelines: PipelineContainer = Depends(get_pipelines),
    ):
        auth = pipelines.presign.authorize(bearer_token(authorization))
        return {"url": pipelines.presign.sign(auth, key)}

    @app.post("/presigned-urls")
    async def presigned_urls(
        request: Request,
        authorization: Optional[str] = Header(None),
        pipelines: PipelineContainer = Depends(get_pipelines),
    ):
        auth = pipelines.presign.authorize(bearer_token(authorization))
        body = await _json_body(request)
        links = await run_in_threadpool(pipelines.presign.sign_many, auth, body.get("keys"))
        return {"results": [link.to_response() for link in links]}

    return app


app = create_app()
