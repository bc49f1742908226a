from __future__ import annotations
import datetime as dt
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.responses import JSONResponse
from contextlib import asynccontextmanager

from api_router import router
from reportable.renderer import TemplateNotFound
from reportable.schema import ProjectionError, ReportDataError
from schemas import ErrorResponse, ErrorEnvelope, ErrorDetail
from settings import APP_NAME, APP_VERSION, CORS_ALLOW_ORIGINS, TRUSTED_HOSTS, GZIP_MIN_SIZE, REQUEST_LOGGING, LOG_LEVEL
from middleware import RequestIDMiddleware, LoggingMiddleware

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("reportable.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup tasks
    logger.info("%s v%s starting up", APP_NAME, APP_VERSION)
    yield
    # Shutdown tasks
    logger.info("shutdown")


app = FastAPI(
    title=APP_NAME,
    version=APP_VERSION,
    description="Project records into tables and render them as JSON, CSV or inline PDF.",
    lifespan=lifespan,
)


# --- Middleware ---
app.add_middleware(RequestIDMiddleware)
app.add_middleware(LoggingMiddleware, mode=REQUEST_LOGGING)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=GZIP_MIN_SIZE)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=TRUSTED_HOSTS or ["*"])


# --- Exception handlers -> uniform envelope ---


def _envelope(status_code: int, err: ErrorEnvelope) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=err).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def on_http_exception(request: Request, exc: StarletteHTTPException):
    status_code = int(getattr(exc, "status_code", 500))
    detail = getattr(exc, "detail", None)
    message = detail if isinstance(detail, str) and detail else str(exc)

    if status_code == status.HTTP_400_BAD_REQUEST:
        code = "BAD_REQUEST"
    elif status_code == status.HTTP_401_UNAUTHORIZED:
        code = "UNAUTHORIZED"
    elif status_code == status.HTTP_403_FORBIDDEN:
        code = "FORBIDDEN"
    elif status_code == status.HTTP_404_NOT_FOUND:
        code = "NOT_FOUND"
    elif status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        code = "METHOD_NOT_ALLOWED"
    else:
        code = f"HTTP_{status_code}"

    return _envelope(status_code, ErrorEnvelope(code=code, message=message))


@app.exception_handler(RequestValidationError)
async def on_validation_error(request: Request, exc: RequestValidationError):
    err = ErrorEnvelope(
        code="UNPROCESSABLE_ENTITY",
        message="Validation error",
        details=[ErrorDetail(issue=str(exc))],
    )
    return _envelope(status.HTTP_422_UNPROCESSABLE_ENTITY, err)


@app.exception_handler(ProjectionError)
async def on_projection_error(request: Request, exc: ProjectionError):
    return _envelope(status.HTTP_400_BAD_REQUEST, ErrorEnvelope(code=exc.code, message=str(exc)))


@app.exception_handler(ReportDataError)
async def on_report_data_error(request: Request, exc: ReportDataError):
    return _envelope(status.HTTP_400_BAD_REQUEST, ErrorEnvelope(code="INVALID_REPORT_DATA", message=str(exc)))


@app.exception_handler(TemplateNotFound)
async def on_template_not_found(request: Request, exc: TemplateNotFound):
    name = exc.args[0] if exc.args else ""
    return _envelope(status.HTTP_404_NOT_FOUND, ErrorEnvelope(code="TEMPLATE_NOT_FOUND", message=f"No report template named {name!r}"))


@app.exception_handler(Exception)
async def on_any_error(request: Request, exc: Exception):
    logger.exception("unhandled_error", extra={"path": request.url.path})
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorEnvelope(code="SERVER_ERROR", message=str(exc)))


# --- Liveness/Readiness ---
@app.get("/healthz")
async def healthz():
    return {"ok": True, "ts": dt.datetime.now(dt.timezone.utc).isoformat()}


@app.get("/readyz")
async def readyz():
    return {"ready": True}


# --- Routes ---
app.include_router(router)


# Optional: dev run
if __name__ == "__main__":
    try:
        import uvicorn  # type: ignore
    except ImportError:
        raise SystemExit("Uvicorn is required. Install dependencies first.")
    uvicorn.run("main:app", host="127.0.0.1", port=8787, reload=True)
