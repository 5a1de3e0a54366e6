"""
Base declarativa do SQLAlchemy. Todos os modelos herdam daqui.
"""

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    """Timestamp de criação gerado na aplicação (consistente entre Postgres e SQLite)."""
    return datetime.now(timezone.utc)
