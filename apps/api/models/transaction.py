"""
Modelo: transactions, ledger de recebimentos PIX (INCOME) e transferências (TRANSFER).
Append-only: a única mutação permitida é INCOME PENDING → COMPLETED.
"""

import uuid
from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, utcnow

TRANSACTION_TYPES = ("INCOME", "TRANSFER")
TRANSACTION_STATUSES = ("PENDING", "COMPLETED", "CANCELLED")

INCOME = "INCOME"
TRANSFER = "TRANSFER"
PENDING = "PENDING"
COMPLETED = "COMPLETED"
CANCELLED = "CANCELLED"


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        sa.Index("ix_transactions_owner_created", "owner_id", "created_at"),
        sa.CheckConstraint("value > 0", name="ck_transactions_value_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[str] = mapped_column(sa.String(64), sa.ForeignKey("accounts.id"), nullable=False)
    # NUNCA float: NUMERIC(12,2) para valores em reais
    value: Mapped[Decimal] = mapped_column(sa.NUMERIC(12, 2), nullable=False)
    type: Mapped[str] = mapped_column(
        sa.Enum(*TRANSACTION_TYPES, name="transaction_type"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        sa.Enum(*TRANSACTION_STATUSES, name="transaction_status"),
        nullable=False,
        default=PENDING,
    )
    description: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
    )
    # id da cobrança no Asaas (somente INCOME)
    external_payment_id: Mapped[str | None] = mapped_column(sa.String(100), unique=True, nullable=True)
    # taxa retida e valor enviado (somente TRANSFER)
    retained_amount: Mapped[Decimal | None] = mapped_column(sa.NUMERIC(12, 2), nullable=True)
    sent_amount: Mapped[Decimal | None] = mapped_column(sa.NUMERIC(12, 2), nullable=True)
    destination_address: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)

    # Relações
    account: Mapped["Account"] = relationship(back_populates="transactions")  # noqa: F821
