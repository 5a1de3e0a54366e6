"""
Dependências injetáveis do FastAPI.
Uso: adicionar como parâmetro na assinatura do endpoint com Depends().
"""

from collections.abc import AsyncIterator
from dataclasses import dataclass

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import AsyncSessionLocal
from core.exceptions import AuthenticationError
from core.security import verify_token
from gateways.asaas_client import AsaasClient

# auto_error=False: a ausência do header vira AuthenticationError (401), não 403
_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    """Contexto explícito do usuário autenticado, passado a todos os serviços."""

    id: str


# ---------------------------------------------------------------------------
# Sessão de banco de dados
# ---------------------------------------------------------------------------


async def get_db() -> AsyncIterator[AsyncSession]:
    """Fornece uma sessão SQLAlchemy async com rollback automático em erro."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# ---------------------------------------------------------------------------
# Autenticação JWT
# ---------------------------------------------------------------------------


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> AuthenticatedUser:
    """
    Valida o Bearer token JWT antes de qualquer lógica de negócio.
    Lança AuthenticationError se o token estiver ausente, inválido ou expirado.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Usuário não autenticado")
    try:
        return AuthenticatedUser(id=verify_token(credentials.credentials))
    except ValueError as exc:
        raise AuthenticationError(str(exc)) from exc


# ---------------------------------------------------------------------------
# Gateway PIX
# ---------------------------------------------------------------------------


async def get_gateway() -> AsyncIterator[AsaasClient]:
    """Cliente Asaas por request; a conexão HTTP é fechada ao final."""
    async with AsaasClient(
        api_key=settings.ASAAS_API_KEY,
        base_url=settings.ASAAS_API_BASE_URL,
        timeout=settings.GATEWAY_TIMEOUT_SECONDS,
    ) as client:
        yield client
