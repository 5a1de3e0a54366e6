"""
Modelo: accounts, uma linha por usuário dono de lançamentos no ledger.
Serve de âncora para o lock por usuário (SELECT ... FOR UPDATE) nas transferências.
"""

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, utcnow


class Account(Base):
    __tablename__ = "accounts"

    # id do usuário autenticado (sub do JWT)
    id: Mapped[str] = mapped_column(sa.String(64), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
    )

    # Relações
    transactions: Mapped[list["Transaction"]] = relationship(back_populates="account")  # noqa: F821
