"""
Router: /api/v1/transfers
POST /bitfinex → transfere saldo para a Bitfinex com taxa de 2% (mínimo R$ 10,00)
"""

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from core.dependencies import AuthenticatedUser, get_current_user, get_db
from core.responses import money, ok
from services.transfer_service import DESTINATION_LABEL, TransferService

router = APIRouter()


class TransferRequest(BaseModel):
    # Ausente ou não numérico chega ao serviço, que responde ValidationError (400)
    amount: Decimal | str | None = None


@router.post("/bitfinex")
async def transfer_to_bitfinex(
    body: TransferRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """O saldo é sempre recalculado no servidor; o cliente envia só o valor."""
    service = TransferService(db=db, owner_id=user.id)
    result = await service.request_transfer(body.amount)
    return ok(
        data={
            "transaction_id": str(result.transaction_id),
            "transferred_amount": money(result.transferred_amount),
            "fee": money(result.fee),
            "sent_amount": money(result.sent_amount),
        },
        meta={
            "destination": DESTINATION_LABEL,
            "message": "Transferência realizada com sucesso",
        },
    )
