# refurb/main.py
import logging
import time

from fastapi import FastAPI, Request, Depends, Form, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from .database import Base, engine, SessionLocal
from . import accounts, models
from .reports import REPORTS
from .errors import TrackerError, SessionExpired, RemoteFailure
from .routers import (
    auth, users, devices, stock, inspections, defects, service, sales, reports, dashboard, labels,
)
from .settings import (
    templates,
    CORS_ORIGINS,
    ALLOWED_HOSTS,
    ENABLE_HTTPS_REDIRECT,
    LOG_LEVEL,
    SHOP_NAME,
)
from .deps import get_db, get_current_user, wants_json, SESSION_COOKIE

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Refurb Tracker")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Cache-Control", "no-store")
        return response

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
if ENABLE_HTTPS_REDIRECT:
    app.add_middleware(HTTPSRedirectMiddleware)
if ALLOWED_HOSTS and ALLOWED_HOSTS != ["*"]:
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=ALLOWED_HOSTS)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window counter per (client ip, path) for the given POST paths."""

    def __init__(self, app, limit: int = 60, window_seconds: int = 60, paths: list[str] | None = None):
        super().__init__(app)
        self.limit = limit
        self.window = window_seconds
        self.paths = set(paths or [])
        self._store: dict = {}

    async def dispatch(self, request, call_next):
        path = request.url.path
        if self.paths and request.method.upper() == "POST" and path in self.paths:
            ip = request.client.host if request.client else "-"
            now = int(time.time())
            key = (ip, path)
            count, start = self._store.get(key, (0, now))
            if now - start >= self.window:
                count, start = 0, now
            count += 1
            self._store[key] = (count, start)
            if count > self.limit:
                logger.warning("Rate limit hit for %s on %s", ip, path)
                return JSONResponse({"detail": "Too Many Requests"}, status_code=429)
        return await call_next(request)


app.add_middleware(
    RateLimitMiddleware,
    limit=100,
    window_seconds=60,
    paths=["/login", "/api/login", "/api/signup"],
)


@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        accounts.seed_default_admin(db)
    finally:
        db.close()


# ----- HTML pages -----

@app.get("/", response_class=HTMLResponse, include_in_schema=False)
def login_page(request: Request):
    return templates.TemplateResponse(request, "login.html", {"shop_name": SHOP_NAME})

@app.post("/login", response_class=HTMLResponse, include_in_schema=False)
def handle_login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    try:
        user = accounts.authenticate(db, email, password)
    except TrackerError as e:
        return templates.TemplateResponse(
            request,
            "login.html",
            {"shop_name": SHOP_NAME, "error": e.detail, "email": email},
            status_code=e.status_code,
        )
    resp = RedirectResponse(url="/home", status_code=status.HTTP_303_SEE_OTHER)
    auth.set_session_cookie(resp, user)
    logger.info("%s logged in", user.email)
    return resp

@app.get("/home", response_class=HTMLResponse, include_in_schema=False)
def home_page(request: Request, current_user: models.User = Depends(get_current_user)):
    return templates.TemplateResponse(
        request, "home.html", {"shop_name": SHOP_NAME, "user": current_user, "reports": REPORTS},
    )

@app.get("/logout", include_in_schema=False)
def logout():
    resp = RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)
    resp.delete_cookie(SESSION_COOKIE)
    return resp


# Routers
app.include_router(auth.router,        prefix="/api", tags=["auth"])
app.include_router(users.router,       prefix="/api", tags=["users"])
app.include_router(devices.router,     prefix="/api", tags=["devices"])
app.include_router(stock.router,       prefix="/api", tags=["stock"])
app.include_router(inspections.router, prefix="/api", tags=["inspections"])
app.include_router(defects.router,     prefix="/api", tags=["defects"])
app.include_router(service.router,     prefix="/api", tags=["service"])
app.include_router(sales.router,       prefix="/api", tags=["sales"])
app.include_router(reports.router,     prefix="/api", tags=["reports"])
app.include_router(dashboard.router,   prefix="/api", tags=["dashboard"])
app.include_router(labels.router,      prefix="/api", tags=["labels"])
app.include_router(labels.router_pages,               tags=["label pages"])


def _error_response(request: Request, status_code: int, detail):
    if wants_json(request):
        return JSONResponse({"detail": detail}, status_code=status_code)
    return templates.TemplateResponse(
        request, "error.html", {"shop_name": SHOP_NAME, "error": detail}, status_code=status_code,
    )

@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException):
    if exc.status_code == status.HTTP_303_SEE_OTHER:
        return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)
    return _error_response(request, exc.status_code, exc.detail)

@app.exception_handler(TrackerError)
def tracker_error_handler(request: Request, exc: TrackerError):
    if isinstance(exc, SessionExpired):
        if wants_json(request):
            resp = JSONResponse({"detail": exc.detail}, status_code=exc.status_code)
        else:
            resp = RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)
        resp.delete_cookie(SESSION_COOKIE)
        return resp
    return _error_response(request, exc.status_code, exc.detail)

@app.exception_handler(SQLAlchemyError)
def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Unhandled storage error on %s", request.url.path, exc_info=exc)
    err = RemoteFailure()
    return _error_response(request, err.status_code, err.detail)
