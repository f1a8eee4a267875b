import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config
from .config import APP_TITLE, DEFAULT_USER_ID, ConfigurationError
from .models import StateUpdate, UserState
from .store import StateStore, close_client, get_collection

logger = logging.getLogger(__name__)

# -----------------------------
# CORS
# -----------------------------

class PreflightCORSMiddleware(CORSMiddleware):
    """CORSMiddleware that answers every preflight with 204 and no body.

    Disallowed origins still get 204, just without Access-Control-Allow-Origin,
    so the browser blocks the real request.
    """

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        headers = {
            k: v for k, v in response.headers.items() if k not in ("content-length", "content-type")
        }
        return Response(status_code=204, headers=headers)


def add_cors(app: FastAPI, origins: List[str]) -> None:
    app.add_middleware(
        PreflightCORSMiddleware,
        allow_origins=origins,
        # empty allow-list: reflect whatever origin asks
        allow_origin_regex=None if origins else ".*",
        allow_credentials=False,
        allow_methods=["GET", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )


# -----------------------------
# Errors
# -----------------------------

async def storage_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    message = "Failed to save state" if request.method == "PUT" else "Failed to load state"
    return JSONResponse(status_code=500, content={"error": message, "details": str(exc)})


async def http_error(request: Request, exc: StarletteHTTPException) -> Response:
    if exc.status_code == 405:
        return JSONResponse(status_code=405, content={"error": "Method not allowed"}, headers=exc.headers)
    return await http_exception_handler(request, exc)


# -----------------------------
# Dependencies
# -----------------------------

async def get_store() -> StateStore:
    return StateStore(await get_collection())


def resolve_user_id(user_id: Optional[str] = Query(None, alias="userId")) -> str:
    return user_id or DEFAULT_USER_ID


# -----------------------------
# App
# -----------------------------

def create_app(cors_origins: Optional[List[str]] = None) -> FastAPI:
    app = FastAPI(title=APP_TITLE)

    add_cors(app, config.cors_origins() if cors_origins is None else cors_origins)

    app.add_exception_handler(ConfigurationError, storage_error)
    app.add_exception_handler(PyMongoError, storage_error)
    # anything else still answers with the same JSON error shape
    app.add_exception_handler(Exception, storage_error)
    app.add_exception_handler(StarletteHTTPException, http_error)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        close_client()

    @app.get("/api/health")
    async def health() -> Dict[str, Any]:
        return {"status": "ok", "app": APP_TITLE}

    @app.get("/api/state", response_model=UserState)
    async def get_state(
        user_id: str = Depends(resolve_user_id),
        store: StateStore = Depends(get_store),
    ) -> UserState:
        return UserState.model_validate(await store.fetch(user_id))

    @app.put("/api/state")
    async def put_state(
        payload: Optional[StateUpdate] = None,
        user_id: str = Depends(resolve_user_id),
        store: StateStore = Depends(get_store),
    ) -> Dict[str, Any]:
        fields = payload.provided_fields() if payload is not None else {}
        await store.upsert(user_id, fields)
        return {"ok": True}

    @app.options("/api/state")
    async def state_options() -> Response:
        return Response(status_code=204)

    return app


app = create_app()
