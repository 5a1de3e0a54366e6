"""
Serviço de leitura do ledger e cálculo de saldo/métricas.

Regras críticas:
- NUNCA float para dados de negócio: sempre Decimal
- Saldo é derivado, nunca armazenado: INCOME COMPLETED - TRANSFER COMPLETED
- PENDING e CANCELLED nunca entram no saldo
- Toda leitura é filtrada pelo dono (owner_id)
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import PersistenceError, ValidationError
from models.account import Account
from models.transaction import COMPLETED, INCOME, PENDING, TRANSFER, Transaction

logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")
PCT_PRECISION = Decimal("0.01")
WEEKLY_WINDOW = timedelta(days=7)
ZERO = Decimal("0")
# Maior valor que cabe em NUMERIC(12,2)
MAX_AMOUNT = Decimal("9999999999.99")


# ---------------------------------------------------------------------------
# Tipos de retorno
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BalanceSummary:
    balance: Decimal
    total_income: Decimal
    total_transfers: Decimal
    pending_amount: Decimal
    average_transaction: Decimal
    total_volume: Decimal        # soma de value de todos os registros, qualquer tipo/status
    weekly_growth_pct: Decimal   # métrica proxy, ver DESIGN.md
    total_transactions: int
    pending_transactions: int
    completed_transactions: int


@dataclass
class TransactionPage:
    items: list[Transaction]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return max(1, -(-self.total // self.limit))  # divisão com teto


# ---------------------------------------------------------------------------
# Validação de valores monetários
# ---------------------------------------------------------------------------


def parse_amount(raw: Any, label: str) -> Decimal:
    """
    Converte e valida um valor em reais vindo do cliente.
    Ausente, não numérico, não finito, <= 0, mais de 2 casas ou acima de MAX_AMOUNT
    viram ValidationError. Retorna o valor quantizado em centavos.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError(f"Informe o {label}")
    if isinstance(raw, bool):
        raise ValidationError(f"O {label} é inválido")
    try:
        amount = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except ArithmeticError as exc:
        raise ValidationError(f"O {label} é inválido") from exc

    if not amount.is_finite() or amount <= ZERO:
        raise ValidationError(f"O {label} deve ser positivo")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"O {label} excede o máximo de R$ 9.999.999.999,99")
    quantized = amount.quantize(CENTS)
    if amount != quantized:
        raise ValidationError("O valor deve ter no máximo 2 casas decimais")
    return quantized


# ---------------------------------------------------------------------------
# Cálculo puro (sem BD, sem IO, 100% testável)
# ---------------------------------------------------------------------------


def _as_utc(dt: datetime) -> datetime:
    # SQLite devolve datetimes naive; tudo é gravado em UTC
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def compute_balance_summary(
    transactions: Iterable[Transaction],
    now: datetime | None = None,
) -> BalanceSummary:
    """
    Deriva saldo e métricas agregadas de um snapshot do ledger.

    weekly_growth_pct = (COMPLETED criados nos últimos 7 dias) / (total de registros) * 100.
    Não é uma taxa de crescimento período-a-período; é mantida exatamente assim.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    window_start = now - WEEKLY_WINDOW

    total_income = ZERO
    total_transfers = ZERO
    pending_amount = ZERO
    total_value = ZERO
    count = 0
    pending_count = 0
    completed_count = 0
    completed_this_week = 0

    for tx in transactions:
        count += 1
        total_value += tx.value

        if tx.status == PENDING:
            pending_amount += tx.value
            pending_count += 1
        elif tx.status == COMPLETED:
            completed_count += 1
            if tx.type == INCOME:
                total_income += tx.value
            elif tx.type == TRANSFER:
                total_transfers += tx.value
            if _as_utc(tx.created_at) >= window_start:
                completed_this_week += 1

    if count == 0:
        average = ZERO
        weekly_growth = ZERO
    else:
        average = (total_value / count).quantize(CENTS, ROUND_HALF_UP)
        weekly_growth = (Decimal(completed_this_week) / Decimal(count) * Decimal("100")).quantize(
            PCT_PRECISION, ROUND_HALF_UP
        )

    return BalanceSummary(
        balance=total_income - total_transfers,
        total_income=total_income,
        total_transfers=total_transfers,
        pending_amount=pending_amount,
        average_transaction=average,
        total_volume=total_value,
        weekly_growth_pct=weekly_growth,
        total_transactions=count,
        pending_transactions=pending_count,
        completed_transactions=completed_count,
    )


# ---------------------------------------------------------------------------
# Conta do ledger
# ---------------------------------------------------------------------------


async def ensure_account(db: AsyncSession, owner_id: str) -> None:
    """
    Garante a linha em `accounts` para o usuário (INSERT ... ON CONFLICT DO NOTHING).
    Idempotente e segura sob concorrência.
    """
    dialect = db.get_bind().dialect.name
    insert = pg_insert if dialect == "postgresql" else sqlite_insert
    stmt = insert(Account).values(id=owner_id, created_at=datetime.now(timezone.utc))
    await db.execute(stmt.on_conflict_do_nothing(index_elements=["id"]))


# ---------------------------------------------------------------------------
# Serviço com acesso ao banco
# ---------------------------------------------------------------------------


class LedgerService:
    """Leituras do ledger sempre escopadas pelo dono."""

    def __init__(self, db: AsyncSession, owner_id: str) -> None:
        self.db = db
        self.owner_id = owner_id

    def _owned(self, query, tx_type: str | None = None, status: str | None = None):
        query = query.where(Transaction.owner_id == self.owner_id)
        if tx_type:
            query = query.where(Transaction.type == tx_type)
        if status:
            query = query.where(Transaction.status == status)
        return query

    async def snapshot(self, tx_type: str | None = None, status: str | None = None) -> list[Transaction]:
        """Todos os lançamentos do usuário, mais recentes primeiro."""
        q = self._owned(select(Transaction), tx_type, status).order_by(
            Transaction.created_at.desc(), Transaction.id.desc()
        )
        try:
            result = await self.db.execute(q)
        except SQLAlchemyError as exc:
            logger.error("ledger.read_failed", owner_id=self.owner_id, error=str(exc))
            raise PersistenceError("Erro ao ler transações") from exc
        return list(result.scalars().all())

    async def list_transactions(
        self,
        page: int = 1,
        limit: int = 50,
        tx_type: str | None = None,
        status: str | None = None,
    ) -> TransactionPage:
        """Histórico paginado, mais recentes primeiro."""
        count_q = self._owned(select(func.count()).select_from(Transaction), tx_type, status)
        data_q = (
            self._owned(select(Transaction), tx_type, status)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        try:
            total: int = (await self.db.execute(count_q)).scalar_one()
            rows = (await self.db.execute(data_q)).scalars().all()
        except SQLAlchemyError as exc:
            logger.error("ledger.read_failed", owner_id=self.owner_id, error=str(exc))
            raise PersistenceError("Erro ao ler transações") from exc

        return TransactionPage(items=list(rows), total=total, page=page, limit=limit)

    async def get_summary(self, now: datetime | None = None) -> BalanceSummary:
        return compute_balance_summary(await self.snapshot(), now=now)
