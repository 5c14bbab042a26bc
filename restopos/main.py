from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import threading
from collections import defaultdict
import time

from restopos.core.config import settings
from restopos.core.errors import PosError
from restopos.db import session as db_session
from restopos.routes import health
from restopos.routes import pos as pos_routes
from restopos.routes import kitchen as kitchen_routes
from restopos.routes import categories as categories_routes
from restopos.routes import menus as menus_routes
from restopos.routes import users as users_routes
from restopos.routes import dashboard as dashboard_routes
from restopos.routes import history as history_routes
from restopos.routes import reports as reports_routes

app = FastAPI(
    title="RestoPOS API",
    version="1.0.0",
    description="Point-of-sale backend: orders, payments, kitchen tickets and reports",
    # Root endpoints register both "" and "/" so no 307 redirects are needed
    redirect_slashes=False,
)

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))
# Dedicated logger so uvicorn.access formatting is left alone
_req_logger = logging.getLogger("restopos.request")
_req_logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))

# In-memory request counters per route (method + path), guarded by a lock
_request_counts = defaultdict(int)
_req_lock = threading.Lock()
_global_request_count = 0


@app.exception_handler(PosError)
async def pos_error_handler(request: Request, exc: PosError):
    if exc.status_code >= 500:
        _req_logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


UNMATCHED_ROUTE = "<unmatched>"


def route_key(request: Request) -> str:
    """`METHOD /path/{template}` once routing has run; unknown paths share one key."""
    route = request.scope.get("route")
    return f"{request.method} {getattr(route, 'path', None) or UNMATCHED_ROUTE}"


@app.middleware("http")
async def request_count_middleware(request: Request, call_next):
    # the SQLAlchemy cursor listener increments this cell during the request
    db_count = [0]
    db_count_token = db_session.request_db_query_count.set(db_count)
    start = time.perf_counter()
    try:
        response = await call_next(request)
    finally:
        db_session.request_db_query_count.reset(db_count_token)
    per_req_db_count = db_count[0]
    duration_ms = int((time.perf_counter() - start) * 1000)

    # the router stores the matched route in the shared scope during call_next
    key = route_key(request)
    global _global_request_count
    with _req_lock:
        _request_counts[key] += 1
        count_val = _request_counts[key]
        _global_request_count += 1
        global_count_val = _global_request_count

    # Log every N hits to avoid spam
    if count_val % settings.REQUEST_LOG_EVERY_N == 0:
        _req_logger.info(f"Request count threshold reached: {key} -> {count_val} (global={global_count_val})")

    prefixes = [p.strip() for p in (settings.REQUEST_LOG_INCLUDE_PREFIXES or "").split(",") if p.strip()]
    if settings.REQUEST_LOG_VERBOSE and any(request.url.path.startswith(pref) for pref in prefixes):
        qs = request.url.query
        path_qs = f"{request.url.path}?{qs}" if qs else request.url.path
        _req_logger.info(
            f"{request.method} {path_qs} -> {response.status_code} in {duration_ms}ms | route_count={count_val} global_count={global_count_val}"
        )
        _req_logger.info(
            f"DB queries: {per_req_db_count} in this request, {db_session.get_global_db_queries_total()} since start"
        )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(health.router)
app.include_router(pos_routes.router)
app.include_router(kitchen_routes.router)
app.include_router(categories_routes.router)
app.include_router(menus_routes.router)
app.include_router(users_routes.router)
app.include_router(dashboard_routes.router)
app.include_router(history_routes.router)
app.include_router(reports_routes.router)


@app.on_event("startup")
def on_startup():
    # create database tables if they don't exist
    db_session.create_db()


@app.get("/")
def root():
    return {"status": "ok", "store": settings.STORE_NAME}
