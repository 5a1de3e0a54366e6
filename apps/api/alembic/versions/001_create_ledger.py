"""create accounts and transactions tables

Revision ID: 001_create_ledger
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_create_ledger"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TRANSACTION_TYPES = ("INCOME", "TRANSFER")
TRANSACTION_STATUSES = ("PENDING", "COMPLETED", "CANCELLED")


def upgrade() -> None:
    op.create_table(
        "accounts",
        # id do usuário (sub do JWT); âncora do lock por usuário nas transferências
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        # NUMERIC(12,2): valores em reais, nunca float
        sa.Column("value", sa.NUMERIC(12, 2), nullable=False),
        sa.Column("type", sa.Enum(*TRANSACTION_TYPES, name="transaction_type"), nullable=False),
        sa.Column("status", sa.Enum(*TRANSACTION_STATUSES, name="transaction_status"), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        # id da cobrança no Asaas; UNIQUE para a transição de status achar um único INCOME
        sa.Column("external_payment_id", sa.String(100), nullable=True),
        sa.Column("retained_amount", sa.NUMERIC(12, 2), nullable=True),
        sa.Column("sent_amount", sa.NUMERIC(12, 2), nullable=True),
        sa.Column("destination_address", sa.String(255), nullable=True),
        sa.CheckConstraint("value > 0", name="ck_transactions_value_positive"),
        sa.ForeignKeyConstraint(["owner_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("external_payment_id"),
    )

    op.create_index(
        "ix_transactions_owner_created",
        "transactions",
        ["owner_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_transactions_owner_created", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("accounts")
    op.execute("DROP TYPE IF EXISTS transaction_status;")
    op.execute("DROP TYPE IF EXISTS transaction_type;")
