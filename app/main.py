"""Entry point for the FastAPI-powered catalog viewer."""

from __future__ import annotations
import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager, contextmanager
from typing import Iterator

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import Settings, settings
from .models import FilterSelection
from .services.firebase import FirebaseCatalogStore, StoreTokenSource
from .services.resolver import ReferenceResolver, StaticTokenSource, TokenSource
from .services.telegram import TelegramFileClient
from .services.viewer import CatalogUnavailableError, CatalogViewer
from .session import SessionState

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_token_source(
    config: Settings, store: FirebaseCatalogStore | None
) -> TokenSource:
    """Prefer a configured bot token, otherwise read it from the store."""

    if config.telegram_bot_token:
        return StaticTokenSource(config.telegram_bot_token)
    if store is not None:
        return StoreTokenSource(store, config.bot_token_path)
    logger.warning("No bot token configured; only absolute URLs will resolve")
    return StaticTokenSource(None)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    telegram_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.telegram_api_url),
            timeout=httpx.Timeout(15.0, connect=5.0),
        )
    )
    session = SessionState(
        id_token=settings.firebase_auth_token,
        public_read=settings.catalog_public_read,
    )

    store: FirebaseCatalogStore | None = None
    if settings.firebase_database_url is not None:
        firebase_http_client = await exit_stack.enter_async_context(
            httpx.AsyncClient(
                base_url=str(settings.firebase_database_url),
                timeout=httpx.Timeout(20.0, connect=10.0),
            )
        )
        store = FirebaseCatalogStore(
            firebase_http_client,
            settings.catalog_path,
            auth=session.current_token,
            poll_interval=settings.catalog_poll_interval_seconds,
        )
    else:
        logger.warning("FIREBASE_DATABASE_URL is not set; the catalog will stay empty")

    telegram = TelegramFileClient(settings, telegram_http_client)
    resolver = ReferenceResolver(build_token_source(settings, store), telegram)
    viewer = CatalogViewer(session, resolver, store)

    fastapi_app.state.session = session
    fastapi_app.state.catalog_viewer = viewer
    await viewer.start()

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await viewer.stop()
        if store is not None:
            await store.close()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Faceted video catalog backed by Firebase and Telegram file storage",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_catalog_viewer(app: FastAPI) -> CatalogViewer:
    viewer = getattr(app.state, "catalog_viewer", None)
    if not isinstance(viewer, CatalogViewer):
        raise RuntimeError("Catalog viewer not initialised")
    return viewer


def register_routes(fastapi_app: FastAPI) -> None:
    @contextmanager
    def _viewer_errors() -> Iterator[None]:
        try:
            yield
        except PermissionError as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc
        except CatalogUnavailableError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc.args[0])) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/catalog")
    async def catalog_endpoint(request: Request) -> JSONResponse:
        viewer = get_catalog_viewer(fastapi_app)
        params = request.query_params
        try:
            selection = FilterSelection(
                content=params.get("content"),
                season=params.get("season"),
                episode=params.get("episode"),
                search=params.get("search"),
            )
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc
        with _viewer_errors():
            view = viewer.view(selection)
        return JSONResponse(view.to_payload())

    @fastapi_app.post("/catalog/selection")
    async def selection_endpoint(request: Request) -> JSONResponse:
        viewer = get_catalog_viewer(fastapi_app)
        try:
            payload = await request.json()
        except json.JSONDecodeError:
            payload = {}
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid payload")

        field_name = payload.get("field")
        value = payload.get("value")
        if not isinstance(field_name, str) or not isinstance(value, str):
            raise HTTPException(
                status_code=400, detail="Both 'field' and 'value' must be strings"
            )
        try:
            current = FilterSelection.model_validate(payload.get("selection") or {})
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc

        with _viewer_errors():
            selection = viewer.cascade(current, field_name, value)
            view = viewer.view(selection)
        return JSONResponse(view.to_payload())

    @fastapi_app.get("/catalog/records/{record_id}/{ref_field}")
    async def record_reference_endpoint(record_id: str, ref_field: str) -> JSONResponse:
        if ref_field not in {"video", "thumbnail"}:
            raise HTTPException(status_code=404, detail="Unknown reference field")
        viewer = get_catalog_viewer(fastapi_app)
        with _viewer_errors():
            resolution = await viewer.resolve_record(record_id, ref_field)  # type: ignore[arg-type]
        return JSONResponse({"recordId": record_id, **resolution.to_payload()})

    @fastapi_app.get("/resolve")
    async def resolve_endpoint(ref: str = "") -> JSONResponse:
        viewer = get_catalog_viewer(fastapi_app)
        if not ref.strip():
            raise HTTPException(status_code=400, detail="Query parameter 'ref' is required")
        resolution = await viewer.resolve(ref)
        return JSONResponse(resolution.to_payload())


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
