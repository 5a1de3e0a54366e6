"""
Orquestração de cobranças PIX: gateway Asaas + ledger.

- generate_pix_qr: cria a cobrança no gateway e só então grava INCOME/PENDING.
  Se o gateway falhar, nada é gravado.
- check_payment_status: consulta o gateway sob demanda; se RECEIVED, aplica
  PENDING → COMPLETED com UPDATE condicional (idempotente).
"""

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ChargeNotFoundError, PersistenceError, ValidationError
from gateways.asaas_client import AsaasClient, PixCharge
from models.transaction import COMPLETED, INCOME, PENDING, Transaction
from services.ledger_service import ensure_account, parse_amount

logger = structlog.get_logger(__name__)

MAX_DESCRIPTION_LENGTH = 500


@dataclass(frozen=True)
class PixQRResult:
    transaction_id: str
    charge: PixCharge


@dataclass(frozen=True)
class PaymentStatusResult:
    charge_id: str
    status: str
    value: Decimal | None
    paid_at: date | None
    ledger_status: str


def _validate_charge_input(value: Any, description: str | None) -> tuple[Decimal, str]:
    value = parse_amount(value, "valor da cobrança")
    description = (description or "").strip()
    if not description:
        raise ValidationError("Preencha a descrição da cobrança")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f"A descrição deve ter no máximo {MAX_DESCRIPTION_LENGTH} caracteres")
    return value, description


class PaymentService:
    def __init__(self, db: AsyncSession, owner_id: str, gateway: AsaasClient) -> None:
        self.db = db
        self.owner_id = owner_id
        self.gateway = gateway

    async def generate_pix_qr(self, value: Any, description: str | None) -> PixQRResult:
        value, description = _validate_charge_input(value, description)
        log = logger.bind(owner_id=self.owner_id, value=str(value))

        # Erros do gateway sobem sem nenhuma escrita no ledger
        charge = await self.gateway.create_pix_charge(value, description)

        tx = Transaction(
            id=uuid.uuid4(),
            owner_id=self.owner_id,
            value=value,
            type=INCOME,
            status=PENDING,
            description=description,
            external_payment_id=charge.charge_id,
        )
        try:
            await ensure_account(self.db, self.owner_id)
            self.db.add(tx)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            # Cobrança já existe no Asaas sem lançamento correspondente
            log.error("pix.orphan_charge", charge_id=charge.charge_id, error=str(exc))
            raise PersistenceError("Erro ao salvar transação") from exc

        log.info("pix.charge_created", charge_id=charge.charge_id, transaction_id=str(tx.id))
        return PixQRResult(transaction_id=str(tx.id), charge=charge)

    async def check_payment_status(self, charge_id: str) -> PaymentStatusResult:
        charge_id = (charge_id or "").strip()
        if not charge_id:
            raise ValidationError("Informe o id da cobrança")

        tx = await self._get_owned_income(charge_id)
        status = await self.gateway.get_payment_status(charge_id)
        ledger_status = tx.status

        if status.is_received and tx.status == PENDING:
            ledger_status = await self._mark_completed(charge_id)

        logger.info(
            "pix.status_checked",
            owner_id=self.owner_id,
            charge_id=charge_id,
            gateway_status=status.status,
            ledger_status=ledger_status,
        )
        return PaymentStatusResult(
            charge_id=charge_id,
            status=status.status,
            value=status.value,
            paid_at=status.paid_at,
            ledger_status=ledger_status,
        )

    async def _get_owned_income(self, charge_id: str) -> Transaction:
        q = select(Transaction).where(
            Transaction.external_payment_id == charge_id,
            Transaction.owner_id == self.owner_id,
            Transaction.type == INCOME,
        )
        try:
            tx = (await self.db.execute(q)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceError("Erro ao ler transação") from exc
        if tx is None:
            raise ChargeNotFoundError(f"Cobrança {charge_id} não encontrada")
        return tx

    async def _mark_completed(self, charge_id: str) -> str:
        """PENDING → COMPLETED; reaplicar é no-op pelo filtro de status."""
        stmt = (
            update(Transaction)
            .where(
                Transaction.external_payment_id == charge_id,
                Transaction.owner_id == self.owner_id,
                Transaction.type == INCOME,
                Transaction.status == PENDING,
            )
            .values(status=COMPLETED)
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("pix.status_update_failed", charge_id=charge_id, error=str(exc))
            raise PersistenceError("Erro ao atualizar status") from exc

        if result.rowcount:
            logger.info("pix.payment_confirmed", owner_id=self.owner_id, charge_id=charge_id)
        return COMPLETED
