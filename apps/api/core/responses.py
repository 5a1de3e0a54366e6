"""
Helpers para o envelope padrão de resposta { data, error, meta }.
Todos os endpoints usam estas funções para manter o formato coerente.
"""

from decimal import Decimal
from typing import Any

CENTS = Decimal("0.01")


def ok(data: Any = None, meta: dict | None = None) -> dict:
    return {"data": data, "error": None, "meta": meta or {}}


def err(message: str, meta: dict | None = None) -> dict:
    """Resposta de erro (usada pelos exception handlers globais)."""
    return {"data": None, "error": message, "meta": meta or {}}


def money(value: Decimal | None) -> str | None:
    """Serializa valores monetários como string com 2 casas (nunca float)."""
    if value is None:
        return None
    return str(value.quantize(CENTS))
