"""
Camada de segurança:
- JWT HS256 para autenticação; o `sub` do token é o id do usuário dono do ledger
- secrets.compare_digest para verificar a senha do operador (timing-safe)

NUNCA logar nem expor: SECRET_KEY, APP_PASSWORD, ASAAS_API_KEY nem tokens.
"""

import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from core.config import settings

ALGORITHM = "HS256"
_MAX_SUBJECT_LENGTH = 64  # tamanho da coluna accounts.id


# ---------------------------------------------------------------------------
# Senha do operador
# ---------------------------------------------------------------------------


def verify_app_password(plain: str) -> bool:
    """
    Compara a senha enviada contra APP_PASSWORD.
    Usa compare_digest para evitar timing attacks.
    """
    return secrets.compare_digest(plain.encode("utf-8"), settings.APP_PASSWORD.encode("utf-8"))


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------


def create_access_token(subject: str, minutes: int | None = None) -> str:
    """Gera um JWT para `subject` com expiração em ACCESS_TOKEN_EXPIRE_MINUTES."""
    ttl = minutes if minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=ttl)
    payload = {"sub": subject, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> str:
    """
    Valida o JWT e retorna o subject (id do usuário).
    Lança ValueError se o token for inválido, expirado ou sem subject.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise ValueError(f"Token inválido: {exc}") from exc

    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub.strip():
        raise ValueError("Token sem subject")
    if len(sub) > _MAX_SUBJECT_LENGTH:
        raise ValueError("Token com subject inválido")
    return sub
