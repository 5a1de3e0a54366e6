"""
Router: /api/v1/pix
POST /qr      → gera cobrança PIX + QR Code e grava INCOME pendente
POST /status  → consulta o status da cobrança no gateway (pode concluir o INCOME)
"""

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from core.dependencies import AuthenticatedUser, get_current_user, get_db, get_gateway
from core.responses import money, ok
from gateways.asaas_client import AsaasClient
from services.payment_service import PaymentService

router = APIRouter()


class PixQRRequest(BaseModel):
    # Ausente ou não numérico chega ao serviço, que responde ValidationError (400)
    value: Decimal | str | None = None
    description: str | None = None


class PaymentStatusRequest(BaseModel):
    charge_id: str = Field(min_length=1, max_length=100)


@router.post("/qr")
async def generate_pix_qr(
    body: PixQRRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: AsaasClient = Depends(get_gateway),
) -> dict:
    service = PaymentService(db=db, owner_id=user.id, gateway=gateway)
    result = await service.generate_pix_qr(body.value, body.description)
    charge = result.charge
    return ok(
        data={
            "charge_id": charge.charge_id,
            "qr_code": charge.qr_payload,
            "qr_code_image": charge.qr_image,
            "expires_at": charge.expires_at,
            "transaction_id": result.transaction_id,
        },
        meta={"message": "QR Code PIX gerado"},
    )


@router.post("/status")
async def check_payment_status(
    body: PaymentStatusRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: AsaasClient = Depends(get_gateway),
) -> dict:
    """
    Consulta sob demanda (polling do cliente). "Ainda não recebido" não é erro:
    retorna o status do gateway e o status atual no ledger.
    """
    service = PaymentService(db=db, owner_id=user.id, gateway=gateway)
    result = await service.check_payment_status(body.charge_id)
    return ok(
        data={
            "charge_id": result.charge_id,
            "status": result.status,
            "value": money(result.value),
            "paid_at": result.paid_at.isoformat() if result.paid_at else None,
            "ledger_status": result.ledger_status,
        }
    )
