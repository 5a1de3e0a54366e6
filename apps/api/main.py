"""
PIX Dashboard: ponto de entrada da aplicação FastAPI
"""

from collections.abc import Sequence
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import settings
from core.dependencies import get_db
from core.exceptions import PixDashboardError
from core.logging import configure_logging
from core.responses import err
from routers import auth, dashboard, pix, transactions, transfers

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL, json_logs=settings.APP_ENV == "production")
    logger.info("api.startup", env=settings.APP_ENV, log_level=settings.LOG_LEVEL)
    yield
    logger.info("api.shutdown")


app = FastAPI(
    title="PIX Dashboard API",
    description="API do painel de recebimentos PIX e transferências para a Bitfinex.",
    version="1.0.0",
    docs_url="/docs" if settings.APP_ENV != "production" else None,
    redoc_url="/redoc" if settings.APP_ENV != "production" else None,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middlewares
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)

# ---------------------------------------------------------------------------
# Exception handlers globais, mantêm o formato { data, error, meta }
# ---------------------------------------------------------------------------


@app.exception_handler(PixDashboardError)
async def domain_exception_handler(request: Request, exc: PixDashboardError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("domain_error", path=request.url.path, error_type=type(exc).__name__, error=exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=exc.status_code,
        content=err(exc.message, meta={"retryable": True} if exc.retryable else None),
        headers=headers,
    )


# Starlette cobre também os 404/405 de rotas inexistentes
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=err(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


def _describe_validation_errors(errors: Sequence[Any]) -> str:
    # "body.amount: Input should be a valid decimal; query.page: ..."
    parts = []
    for e in errors:
        loc = ".".join(str(p) for p in e.get("loc", ()))
        parts.append(f"{loc}: {e.get('msg', 'inválido')}")
    return "; ".join(parts)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("request.invalid", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=err(f"Erro de validação: {_describe_validation_errors(exc.errors())}"),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Detalhes só no log; o cliente recebe apenas o tipo do erro
    logger.error("unhandled_exception", path=request.url.path, error_type=type(exc).__name__, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=err(f"Erro interno do servidor: {type(exc).__name__}"),
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(auth.router, prefix="/api/v1/auth", tags=["auth"])
app.include_router(dashboard.router, prefix="/api/v1/dashboard", tags=["dashboard"])
app.include_router(pix.router, prefix="/api/v1/pix", tags=["pix"])
app.include_router(transfers.router, prefix="/api/v1/transfers", tags=["transfers"])
app.include_router(transactions.router, prefix="/api/v1/transactions", tags=["transactions"])


# ---------------------------------------------------------------------------
# Health check (sem auth)
# ---------------------------------------------------------------------------


@app.get("/health", tags=["health"])
async def health_check(db: AsyncSession = Depends(get_db)) -> dict:
    """Liveness + ping no banco. Banco fora do ar responde 200 com status "degraded"."""
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as exc:
        logger.warning("health.database_unavailable", error=str(exc))
        database = "unavailable"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "env": settings.APP_ENV,
        "database": database,
    }
