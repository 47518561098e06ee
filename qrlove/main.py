import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# .env da raiz do projeto, independente de onde o uvicorn é iniciado
_PROJ_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJ_ROOT / ".env")

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded

from qrlove.admin import admin_router
from qrlove.api.auth import router as auth_router
from qrlove.api.checkout import router as checkout_router
from qrlove.api.pages import router as pages_router
from qrlove.api.webhook import router as webhook_router
from qrlove.core.config import is_stripe_configured, media_root, settings
from qrlove.core.database import init_db, ping_db
from qrlove.core.rate_limit import limiter
from qrlove.logging import setup_logging

setup_logging(level=logging.INFO)
log = logging.getLogger("qrlove")


def _cors_origins_list() -> list[str]:
    if not settings.cors_origins or settings.cors_origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in settings.cors_origins.split(",") if o.strip()]


MEDIA_DIR = media_root()
MEDIA_DIR.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    log.info("Stripe configured: %s", "yes" if is_stripe_configured() else "NO (defina STRIPE_SECRET_KEY no .env)")
    yield


app = FastAPI(
    title="QRLove API",
    description="Páginas comemorativas com QR code para casais",
    lifespan=lifespan,
)
app.state.limiter = limiter


def _error_response(request: Request, status_code: int, detail: str) -> JSONResponse:
    rid = getattr(request.state, "request_id", None)
    body = {"error": detail, "status_code": status_code}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=status_code, content=body)


def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    log.warning("Rate limit exceeded: path=%s limit=%s", request.url.path, exc.detail)
    return _error_response(request, 429, "Muitas requisições. Aguarde um minuto e tente novamente.")


app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)


def _jsonable_errors(errs) -> list[dict]:
    # ctx pode conter a exceção original (ValueError), que não é serializável
    return jsonable_encoder([{k: v for k, v in e.items() if k != "ctx"} for e in errs])


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errs = exc.errors()
    log.warning(
        "Request validation error (422): path=%s method=%s detail=%s",
        request.url.path,
        request.method,
        errs,
    )
    first = errs[0] if errs else {}
    user_msg = str(first.get("msg") or "Requisição inválida.")
    rid = getattr(request.state, "request_id", None)
    body = {"error": user_msg, "status_code": 422, "detail": _jsonable_errors(errs)}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=422, content=body)


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    response = _error_response(request, exc.status_code, exc.detail if isinstance(exc.detail, str) else str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled exception: path=%s %s", request.url.path, exc)
    return _error_response(request, 500, "Erro inesperado no servidor.")


@app.middleware("http")
async def request_id_and_latency(request: Request, call_next):
    request.state.request_id = str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    latency_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request.state.request_id
    log.info(
        "request_id=%s method=%s path=%s status=%s latency_ms=%.2f",
        request.state.request_id,
        request.method,
        request.url.path,
        response.status_code,
        latency_ms,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)  # /admin/login, antes do router protegido
app.include_router(admin_router)
app.include_router(checkout_router)
app.include_router(pages_router)
app.include_router(webhook_router)

app.mount("/media", StaticFiles(directory=str(MEDIA_DIR)), name="media")


@app.get("/health")
def health():
    return {
        "status": "ok",
        "stripe_configured": is_stripe_configured(),
        "database": "ok" if ping_db() else "error",
    }


@app.get("/config")
def stripe_config():
    """Chave pública da Stripe para o frontend."""
    return {"publicKey": settings.stripe_publishable_key}


@app.get("/")
def index():
    return {"status": "ready", "service": "qrlove-api"}
