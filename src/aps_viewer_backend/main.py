from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

import httpx
from fastapi import Depends, FastAPI, File, Form, HTTPException, Path, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .configuration import get_settings
from .errors import ApsError
from .model_manager import ModelManager
from .models import AccessToken, BucketObject, TranslationStatus
from .utils import object_key_from_filename

logger = logging.getLogger(__name__)

# base64 urns in either alphabet, as produced by encode_urn or returned by the job endpoint
URN_PATTERN = r"^[A-Za-z0-9_\-+/=]+$"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    async with httpx.AsyncClient(base_url=settings.base_url, timeout=settings.http_timeout) as http:
        app.state.model_manager = ModelManager.from_settings(settings, http)
        if settings.static_dir.is_dir() and not any(getattr(r, "name", None) == "static" for r in app.routes):
            app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
        logger.info(f"Serving models from bucket {settings.bucket}")
        yield


app = FastAPI(title="APS Viewer API", version="0.1.0", lifespan=lifespan)

allowed_origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_model_manager(request: Request) -> ModelManager:
    return request.app.state.model_manager


@app.exception_handler(ApsError)
async def platform_error_handler(request: Request, exc: ApsError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=502, content={"detail": exc.detail, "error": type(exc).__name__})


@app.get("/healthz")
def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/auth/token", response_model=AccessToken)
async def get_access_token(manager: ModelManager = Depends(get_model_manager)) -> AccessToken:
    return await manager.public_token()


@app.get("/api/models", response_model=List[BucketObject])
async def list_models(manager: ModelManager = Depends(get_model_manager)) -> List[BucketObject]:
    return await manager.list_models()


@app.get("/api/models/{urn:path}/status", response_model=TranslationStatus)
async def model_status(
    urn: str = Path(..., pattern=URN_PATTERN),
    manager: ModelManager = Depends(get_model_manager),
) -> TranslationStatus:
    return await manager.model_status(urn)


@app.post("/api/models", response_model=BucketObject)
async def upload_and_translate_model(
    model_file: UploadFile = File(..., alias="model-file"),
    entrypoint: Optional[str] = Form(None, alias="model-zip-entrypoint"),
    manager: ModelManager = Depends(get_model_manager),
) -> BucketObject:
    name = object_key_from_filename(model_file.filename or "")
    if not name:
        raise HTTPException(status_code=400, detail="Model file must have a filename")

    try:
        content = await model_file.read()
    finally:
        await model_file.close()

    return await manager.upload_and_translate(name, content, (entrypoint or "").strip() or None)
