"""
Router de autenticação: POST /api/v1/auth/token
O operador troca a APP_PASSWORD do .env por um token para um usuário do ledger.
Tokens emitidos externamente com a mesma SECRET_KEY também são aceitos.
"""

import structlog
from fastapi import APIRouter
from pydantic import BaseModel, Field

from core.exceptions import AuthenticationError
from core.responses import ok
from core.security import create_access_token, verify_app_password

logger = structlog.get_logger(__name__)

router = APIRouter()


class LoginRequest(BaseModel):
    password: str
    user_id: str = Field(min_length=1, max_length=64)


@router.post("/token")
async def issue_token(body: LoginRequest) -> dict:
    """Emite um JWT Bearer cujo `sub` é o user_id; expira em ACCESS_TOKEN_EXPIRE_MINUTES."""
    user_id = body.user_id.strip()
    if not user_id:
        raise AuthenticationError("Informe o usuário")
    if not verify_app_password(body.password):
        raise AuthenticationError("Senha incorreta")

    logger.info("auth.token_issued", user_id=user_id)
    return ok(
        data={"access_token": create_access_token(user_id), "token_type": "bearer"},
        meta={"note": "Inclua o token no header: Authorization: Bearer <token>"},
    )
