"""
Transferência do saldo acumulado para a Bitfinex.

Fluxo de request_transfer():
1. Validação de valor (positivo, 2 casas, mínimo R$ 10,00) antes de qualquer IO
2. Serialização por usuário: asyncio.Lock no processo + SELECT ... FOR UPDATE em accounts
3. Saldo recalculado a partir do ledger relido (nunca confiar no saldo do cliente)
4. Taxa fixa de 2%; grava TRANSFER já COMPLETED (liquidação simulada, síncrona)
"""

import asyncio
import uuid
import weakref
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import InsufficientBalanceError, PersistenceError, ValidationError
from models.account import Account
from models.transaction import COMPLETED, TRANSFER, Transaction
from services.ledger_service import LedgerService, compute_balance_summary, ensure_account, parse_amount

logger = structlog.get_logger(__name__)

TRANSFER_FEE_RATE = Decimal("0.02")
MINIMUM_TRANSFER = Decimal("10.00")
CENTS = Decimal("0.01")
DESTINATION_LABEL = "Bitfinex Exchange"
TRANSFER_DESCRIPTION = "Transferência para Bitfinex"

# Um lock por usuário dentro do processo; entre processos vale o FOR UPDATE.
# A entrada some quando nenhuma transferência do usuário segura mais o lock.
_owner_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _owner_lock(owner_id: str) -> asyncio.Lock:
    lock = _owner_locks.get(owner_id)
    if lock is None:
        lock = asyncio.Lock()
        _owner_locks[owner_id] = lock
    return lock


# ---------------------------------------------------------------------------
# Tipos de retorno
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransferQuote:
    amount: Decimal
    fee: Decimal
    net_amount: Decimal


@dataclass(frozen=True)
class TransferResult:
    transaction_id: uuid.UUID
    transferred_amount: Decimal
    fee: Decimal
    sent_amount: Decimal


# ---------------------------------------------------------------------------
# Política de taxa (pura)
# ---------------------------------------------------------------------------


def validate_amount(amount: Any) -> Decimal:
    """Valor presente, numérico, positivo, com no máximo 2 casas e dentro de NUMERIC(12,2)."""
    return parse_amount(amount, "valor da transferência")


def compute_transfer_fee(amount: Decimal) -> TransferQuote:
    """fee = round(amount * 2%, 2); net = amount - fee."""
    amount = validate_amount(amount)
    fee = (amount * TRANSFER_FEE_RATE).quantize(CENTS, ROUND_HALF_UP)
    return TransferQuote(amount=amount, fee=fee, net_amount=amount - fee)


# ---------------------------------------------------------------------------
# Orquestrador
# ---------------------------------------------------------------------------


class TransferService:
    def __init__(self, db: AsyncSession, owner_id: str) -> None:
        self.db = db
        self.owner_id = owner_id
        self._ledger = LedgerService(db, owner_id)

    async def request_transfer(self, amount: Any) -> TransferResult:
        amount = validate_amount(amount)
        if amount < MINIMUM_TRANSFER:
            raise ValidationError("O valor mínimo para transferência é R$ 10,00")

        log = logger.bind(owner_id=self.owner_id, amount=str(amount))

        lock = _owner_lock(self.owner_id)
        async with lock:
            try:
                await ensure_account(self.db, self.owner_id)
                # Lock da linha do usuário até o commit; o snapshot abaixo é lido depois dele
                await self.db.get(Account, self.owner_id, with_for_update=True, populate_existing=True)
                snapshot = await self._ledger.snapshot()
            except SQLAlchemyError as exc:
                await self.db.rollback()
                log.error("transfer.lock_failed", error=str(exc))
                raise PersistenceError("Erro ao verificar saldo") from exc
            except PersistenceError:
                await self.db.rollback()
                raise

            balance = compute_balance_summary(snapshot).balance
            if amount > balance:
                await self.db.rollback()
                log.info("transfer.insufficient_balance", balance=str(balance))
                raise InsufficientBalanceError(requested=amount, available=balance)

            quote = compute_transfer_fee(amount)
            tx = Transaction(
                id=uuid.uuid4(),
                owner_id=self.owner_id,
                value=quote.amount,
                type=TRANSFER,
                status=COMPLETED,  # liquidação simulada instantânea
                description=TRANSFER_DESCRIPTION,
                retained_amount=quote.fee,
                sent_amount=quote.net_amount,
                destination_address=DESTINATION_LABEL,
            )
            self.db.add(tx)
            try:
                await self.db.commit()
            except SQLAlchemyError as exc:
                await self.db.rollback()
                log.error("transfer.persist_failed", error=str(exc))
                raise PersistenceError("Erro ao processar transferência") from exc

        log.info("transfer.completed", transaction_id=str(tx.id), fee=str(quote.fee))
        return TransferResult(
            transaction_id=tx.id,
            transferred_amount=quote.amount,
            fee=quote.fee,
            sent_amount=quote.net_amount,
        )
