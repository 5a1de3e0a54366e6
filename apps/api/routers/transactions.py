"""
Router: /api/v1/transactions
GET /           → histórico paginado do usuário (mais recentes primeiro)
GET /export     → download CSV do histórico filtrado
"""

import csv
import io
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from core.dependencies import AuthenticatedUser, get_current_user, get_db
from core.responses import money, ok
from models.transaction import TRANSACTION_STATUSES, TRANSACTION_TYPES, Transaction
from services.ledger_service import LedgerService

router = APIRouter()

TypeFilter = Annotated[
    str | None, Query(pattern="^(INCOME|TRANSFER)$", description=f"Filtro por tipo: {TRANSACTION_TYPES}")
]
StatusFilter = Annotated[
    str | None,
    Query(pattern="^(PENDING|COMPLETED|CANCELLED)$", description=f"Filtro por status: {TRANSACTION_STATUSES}"),
]


@router.get("")
async def list_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    type: TypeFilter = None,
    status: StatusFilter = None,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Histórico paginado com filtros opcionais.
    meta inclui: page, limit, total, pages.
    """
    result = await LedgerService(db, user.id).list_transactions(
        page=page, limit=limit, tx_type=type, status=status
    )
    return ok(
        data=[_tx_to_dict(tx) for tx in result.items],
        meta={
            "page": result.page,
            "limit": result.limit,
            "total": result.total,
            "pages": result.pages,
        },
    )


@router.get("/export")
async def export_transactions(
    type: TypeFilter = None,
    status: StatusFilter = None,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> StreamingResponse:
    """Exporta o ledger do usuário em CSV (separador ';', padrão BR); aceita os mesmos filtros da listagem."""
    rows = await LedgerService(db, user.id).snapshot(tx_type=type, status=status)

    output = io.StringIO()
    writer = csv.writer(output, delimiter=";")
    writer.writerow([
        "id", "created_at", "type", "status", "value",
        "retained_amount", "sent_amount", "description",
        "external_payment_id", "destination_address",
    ])
    for tx in rows:
        writer.writerow([
            str(tx.id), tx.created_at.isoformat(), tx.type, tx.status, money(tx.value),
            money(tx.retained_amount) or "", money(tx.sent_amount) or "",
            (tx.description or "").replace("\n", " "),
            tx.external_payment_id or "", tx.destination_address or "",
        ])

    output.seek(0)
    filename = f"transactions_{date.today()}.csv"
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def _tx_to_dict(tx: Transaction) -> dict:
    return {
        "id": str(tx.id),
        "type": tx.type,
        "status": tx.status,
        "value": money(tx.value),
        "description": tx.description,
        "created_at": tx.created_at.isoformat(),
        "external_payment_id": tx.external_payment_id,
        "retained_amount": money(tx.retained_amount),
        "sent_amount": money(tx.sent_amount),
        "destination_address": tx.destination_address,
    }
