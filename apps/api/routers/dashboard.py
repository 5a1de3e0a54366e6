"""
Router: /api/v1/dashboard
GET /overview → saldo e métricas derivadas do ledger do usuário
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.dependencies import AuthenticatedUser, get_current_user, get_db
from core.responses import money, ok
from services.ledger_service import LedgerService
from services.transfer_service import MINIMUM_TRANSFER

router = APIRouter()


@router.get("/overview")
async def get_overview(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Resumo do painel:
    - Saldo disponível (INCOME COMPLETED - TRANSFER COMPLETED)
    - Totais recebidos/transferidos, valor pendente, ticket médio, volume total
    - can_transfer: saldo atinge o mínimo de transferência
    - Contagens e "crescimento semanal" (métrica proxy, ver DESIGN.md)
    """
    summary = await LedgerService(db, user.id).get_summary()
    return ok(
        data={
            "balance": money(summary.balance),
            "total_income": money(summary.total_income),
            "total_transfers": money(summary.total_transfers),
            "pending_amount": money(summary.pending_amount),
            "average_transaction": money(summary.average_transaction),
            "total_volume": money(summary.total_volume),
            "weekly_growth_pct": str(summary.weekly_growth_pct),
            "total_transactions": summary.total_transactions,
            "pending_transactions": summary.pending_transactions,
            "completed_transactions": summary.completed_transactions,
        },
        meta={"can_transfer": summary.balance >= MINIMUM_TRANSFER, "minimum_transfer": money(MINIMUM_TRANSFER)},
    )
