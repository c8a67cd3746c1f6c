import uuid
from datetime import datetime
from typing import Dict, List, Optional
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, HTMLResponse
import uvicorn

from .bootstrap import initialize
from .models import (
    BalloonRequest, ErrorResponse, HealthResponse, LatLngSearchRequest,
    LayerItemModel, MarkerModel, MarkerRequest, PanRequest, ServerConfig,
    SessionRequest, SessionResponse, ToggleRequest, ToggleResult, ViewState,
)
from .icons import build_icon_urls
from .layer_panel import UiEvent
from .page import render_config_error_page, render_map_page
from .search import jump_to_lat_lng
from .server_defs import ServerDefsError, load_server_defs
from .session import PageSession, get_session_store
from .utils.logging import setup_logging, get_logger
from .widget import MapWidgetError
from .settings import (
    LOG_LEVEL,
    FRONTEND_ORIGIN,
    GEE_SERVER_URL,
    GEE_SERVER_DEFS_VAR,
    GEE_STATIC_URL,
    GEE_TIMEOUT,
    MAPS_API_URL,
    MAX_SESSIONS,
    SESSION_TTL,
    cache,
)

VERSION = "1.0.0"

setup_logging(LOG_LEVEL)
logger = get_logger(__name__)

app = FastAPI(
    title="GEE Maps Portal",
    description="Map page and layer panel for Google Earth Enterprise map databases",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

origins = [origin.strip() for origin in FRONTEND_ORIGIN.split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

sessions = get_session_store(max_size=MAX_SESSIONS, ttl=SESSION_TTL)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log requests with timing and add request ID."""
    request_id = str(uuid.uuid4())[:8]
    start_time = datetime.utcnow()
    request.state.request_id = request_id

    logger.info(
        "Request started",
        extra={
            'request_id': request_id,
            'method': request.method,
            'url': str(request.url),
            'client_ip': request.client.host if request.client else None
        }
    )

    try:
        response = await call_next(request)
    except Exception as e:
        duration = (datetime.utcnow() - start_time).total_seconds() * 1000
        logger.error(
            "Request failed",
            extra={
                'request_id': request_id,
                'method': request.method,
                'url': str(request.url),
                'duration_ms': round(duration, 2),
                'error': str(e)
            },
            exc_info=True
        )
        raise

    duration = (datetime.utcnow() - start_time).total_seconds() * 1000
    logger.info(
        "Request completed",
        extra={
            'request_id': request_id,
            'method': request.method,
            'url': str(request.url),
            'status_code': response.status_code,
            'duration_ms': round(duration, 2)
        }
    )
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    request_id = getattr(request.state, 'request_id', 'unknown')

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.detail,
            request_id=request_id
        ).model_dump()
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    problems = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    logger.warning("Request validation failed", extra={'request_id': request_id, 'errors': problems})

    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error="Invalid request",
            detail="; ".join(problems),
            request_id=request_id
        ).model_dump()
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, 'request_id', 'unknown')

    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc) if LOG_LEVEL == "DEBUG" else None,
            request_id=request_id
        ).model_dump()
    )


def _static_url(request: Request) -> str:
    return GEE_STATIC_URL or str(request.base_url).rstrip("/")


async def _server_defs() -> ServerConfig:
    return await load_server_defs(GEE_SERVER_URL, GEE_SERVER_DEFS_VAR, timeout=GEE_TIMEOUT, cache=cache)


def _session(session_id: str) -> PageSession:
    try:
        return sessions.get(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")


@app.get("/healthz", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        timestamp=datetime.utcnow().isoformat(),
        version=VERSION
    )


@app.get("/", response_class=HTMLResponse)
@app.get("/maps", response_class=HTMLResponse)
async def map_page(request: Request, search: Optional[str] = None):
    """Serve the map page; ll, z and search_timeout are honoured from the query string."""
    params: Dict[str, str] = dict(request.query_params)
    show_search = search not in ("0", "false", "no")

    try:
        server_defs = await _server_defs()
    except ServerDefsError as exc:
        logger.error(f"Server definitions unavailable: {exc}", extra={'url': exc.url})
        return HTMLResponse(render_config_error_page(), status_code=503)

    session = initialize(
        server_defs,
        show_search=show_search,
        params=params,
        static_url=_static_url(request),
    )
    sessions.add(session)
    return HTMLResponse(render_map_page(session, MAPS_API_URL))


@app.get("/api/server-defs", response_model=ServerConfig)
async def server_defs_endpoint():
    try:
        return await _server_defs()
    except ServerDefsError as exc:
        logger.error(f"Server definitions unavailable: {exc}")
        raise HTTPException(status_code=503, detail=str(exc))


@app.get("/api/icons", response_model=Dict[str, str])
async def icon_urls_endpoint(request: Request):
    return build_icon_urls(_static_url(request)).as_dict()


@app.post("/api/sessions", response_model=SessionResponse)
async def create_session(body: SessionRequest, request: Request):
    """Bootstrap a page session for clients that render the map themselves."""
    try:
        server_defs = await _server_defs()
    except ServerDefsError as exc:
        logger.error(f"Server definitions unavailable: {exc}")
        raise HTTPException(status_code=503, detail=str(exc))

    session = initialize(
        server_defs,
        show_search=body.showSearch,
        params=body.params,
        static_url=_static_url(request),
    )
    sessions.add(session)
    return session.to_response()


@app.get("/api/sessions/{session_id}", response_model=ViewState)
async def session_view(session_id: str):
    return _session(session_id).widget.snapshot()


@app.delete("/api/sessions/{session_id}", status_code=204)
async def close_session(session_id: str):
    sessions.discard(session_id)


@app.get("/api/sessions/{session_id}/layers", response_model=List[LayerItemModel])
async def session_layers(session_id: str):
    return _session(session_id).layer_panel.item_models()


@app.post("/api/sessions/{session_id}/layers/toggle", response_model=ToggleResult)
async def toggle_layer(session_id: str, body: ToggleRequest):
    """Apply a checkbox change; failures come back in the result, never as an error status."""
    session = _session(session_id)
    return session.layer_panel.toggle_layer(
        session.facade,
        body.checkboxId,
        body.layerId,
        body.layerName,
        checked=body.checked,
        event=UiEvent(type="change"),
    )


@app.post("/api/sessions/{session_id}/layers/{layer_id}/click", response_model=ViewState)
async def click_layer(session_id: str, layer_id: str):
    session = _session(session_id)
    try:
        item = session.layer_panel.item(layer_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown layer: {layer_id}")

    item.on_click(session.facade, UiEvent())
    return session.widget.snapshot()


@app.post("/api/sessions/{session_id}/view", response_model=ViewState)
async def pan_to(session_id: str, body: PanRequest):
    session = _session(session_id)
    session.facade.pan_to(body.lat, body.lng, body.zoom)
    return session.widget.snapshot()


@app.post("/api/sessions/{session_id}/markers", response_model=MarkerModel)
async def create_marker(session_id: str, body: MarkerRequest):
    session = _session(session_id)
    try:
        marker = session.facade.create_marker(
            body.name, body.description, body.latlng.model_dump(), body.iconUrl
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return marker.to_model()


@app.delete("/api/sessions/{session_id}/markers/{marker_id}", response_model=ViewState)
async def remove_marker(session_id: str, marker_id: str):
    session = _session(session_id)
    try:
        marker = session.widget.get_marker(marker_id)
    except MapWidgetError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    session.facade.remove_overlay(marker)
    return session.widget.snapshot()


@app.post("/api/sessions/{session_id}/markers/{marker_id}/click", response_model=ViewState)
async def click_marker(session_id: str, marker_id: str):
    session = _session(session_id)
    try:
        marker = session.widget.get_marker(marker_id)
    except MapWidgetError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    session.widget.trigger(marker, 'click')
    return session.widget.snapshot()


@app.post("/api/sessions/{session_id}/balloon", response_model=ViewState)
async def open_balloon(session_id: str, body: BalloonRequest):
    session = _session(session_id)
    try:
        marker = session.widget.get_marker(body.markerId)
    except MapWidgetError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    session.facade.open_balloon(marker, body.title, body.body)
    return session.widget.snapshot()


@app.delete("/api/sessions/{session_id}/balloon", response_model=ViewState)
async def close_balloon(session_id: str):
    session = _session(session_id)
    session.facade.close_info_window()
    return session.widget.snapshot()


@app.post("/api/sessions/{session_id}/search/latlng", response_model=ViewState)
async def search_lat_lng(session_id: str, body: LatLngSearchRequest):
    session = _session(session_id)
    try:
        jump_to_lat_lng(session.facade, body.latlng)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return session.widget.snapshot()


@app.post("/api/sessions/{session_id}/search/clear", response_model=ViewState)
async def clear_search(session_id: str):
    session = _session(session_id)
    if session.search_panel is None:
        raise HTTPException(status_code=409, detail="Search is not enabled for this session")

    session.search_panel.clear_results()
    return session.widget.snapshot()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
