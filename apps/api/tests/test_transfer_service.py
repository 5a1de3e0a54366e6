"""
Testes da política de taxa e do fluxo de transferência para a Bitfinex.
A política é pura; o fluxo usa o SQLite em memória do conftest.
"""

import asyncio
import gc
from decimal import Decimal

import pytest

from core.exceptions import InsufficientBalanceError, ValidationError
from services import transfer_service
from services.ledger_service import LedgerService
from services.transfer_service import (
    DESTINATION_LABEL,
    TransferService,
    compute_transfer_fee,
    validate_amount,
)

OWNER = "user-1"

# ---------------------------------------------------------------------------
# Testes: política de taxa
# ---------------------------------------------------------------------------


def test_fee_is_two_percent_of_amount():
    quote = compute_transfer_fee(Decimal("50.00"))

    assert quote.amount == Decimal("50.00")
    assert quote.fee == Decimal("1.00")
    assert quote.net_amount == Decimal("49.00")


def test_fee_rounds_half_up_to_cents():
    # 10.25 * 0.02 = 0.205 → 0.21
    quote = compute_transfer_fee(Decimal("10.25"))

    assert quote.fee == Decimal("0.21")
    assert quote.net_amount == Decimal("10.04")


@pytest.mark.parametrize("amount", ["10.00", "33.33", "999.99", "12345.67"])
def test_fee_plus_net_equals_amount(amount):
    quote = compute_transfer_fee(Decimal(amount))

    assert quote.fee + quote.net_amount == quote.amount


@pytest.mark.parametrize("amount", ["0", "-5", "NaN", "Infinity"])
def test_validate_amount_rejects_non_positive_or_non_finite(amount):
    with pytest.raises(ValidationError):
        validate_amount(Decimal(amount))


def test_validate_amount_rejects_more_than_two_decimals():
    with pytest.raises(ValidationError):
        validate_amount(Decimal("10.001"))


def test_validate_amount_accepts_plain_numbers():
    assert validate_amount(25) == Decimal("25.00")
    assert validate_amount("10.5") == Decimal("10.50")


@pytest.mark.parametrize("amount", [None, "", "abc", True, Decimal("1e30"), Decimal("10000000000.00")])
def test_validate_amount_rejects_missing_non_numeric_or_oversized(amount):
    with pytest.raises(ValidationError):
        validate_amount(amount)


def test_validate_amount_accepts_column_maximum():
    assert validate_amount(Decimal("9999999999.99")) == Decimal("9999999999.99")


# ---------------------------------------------------------------------------
# Testes: request_transfer
# ---------------------------------------------------------------------------


async def test_transfer_within_balance_is_recorded(db, seed):
    await seed(OWNER, ("INCOME", "COMPLETED", "100.00"), ("TRANSFER", "COMPLETED", "30.00"))

    result = await TransferService(db, OWNER).request_transfer(Decimal("50.00"))

    assert result.transferred_amount == Decimal("50.00")
    assert result.fee == Decimal("1.00")
    assert result.sent_amount == Decimal("49.00")

    ledger = LedgerService(db, OWNER)
    transfers = (await ledger.list_transactions(tx_type="TRANSFER")).items
    recorded = next(tx for tx in transfers if tx.id == result.transaction_id)
    assert recorded.status == "COMPLETED"
    assert recorded.value == Decimal("50.00")
    assert recorded.retained_amount == Decimal("1.00")
    assert recorded.sent_amount == Decimal("49.00")
    assert recorded.destination_address == DESTINATION_LABEL
    assert (await ledger.get_summary()).balance == Decimal("20.00")


async def test_transfer_above_balance_is_rejected_without_writes(db, seed):
    await seed(OWNER, ("INCOME", "COMPLETED", "100.00"), ("TRANSFER", "COMPLETED", "30.00"))

    with pytest.raises(InsufficientBalanceError) as exc_info:
        await TransferService(db, OWNER).request_transfer(Decimal("100.00"))

    assert exc_info.value.available == Decimal("70.00")
    page = await LedgerService(db, OWNER).list_transactions()
    assert page.total == 2


async def test_transfer_of_entire_balance_is_allowed(db, seed):
    await seed(OWNER, ("INCOME", "COMPLETED", "70.00"))

    result = await TransferService(db, OWNER).request_transfer(Decimal("70.00"))

    assert result.fee == Decimal("1.40")
    assert (await LedgerService(db, OWNER).get_summary()).balance == Decimal("0.00")


async def test_transfer_below_minimum_is_rejected_before_reading(db, seed):
    await seed(OWNER, ("INCOME", "COMPLETED", "100.00"))

    with pytest.raises(ValidationError, match="mínimo"):
        await TransferService(db, OWNER).request_transfer(Decimal("5"))

    assert (await LedgerService(db, OWNER).list_transactions()).total == 1


async def test_pending_income_does_not_fund_transfer(db, seed):
    await seed(OWNER, ("INCOME", "PENDING", "500.00"))

    with pytest.raises(InsufficientBalanceError):
        await TransferService(db, OWNER).request_transfer(Decimal("10.00"))


async def test_new_user_starts_with_zero_balance(db):
    with pytest.raises(InsufficientBalanceError) as exc_info:
        await TransferService(db, "brand-new-user").request_transfer(Decimal("10.00"))

    assert exc_info.value.available == Decimal("0")


async def test_concurrent_transfers_cannot_overdraw(session_factory, seed):
    """Duas transferências de 50 sobre saldo 70: exatamente uma é aceita."""
    await seed("concurrent-user", ("INCOME", "COMPLETED", "70.00"))

    async def attempt():
        async with session_factory() as session:
            return await TransferService(session, "concurrent-user").request_transfer(Decimal("50.00"))

    results = await asyncio.gather(attempt(), attempt(), return_exceptions=True)

    accepted = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, InsufficientBalanceError)]
    assert len(accepted) == 1
    assert len(rejected) == 1

    async with session_factory() as session:
        assert (await LedgerService(session, "concurrent-user").get_summary()).balance == Decimal("20.00")


async def test_owner_lock_is_dropped_after_transfer(db, seed):
    await seed("short-lived-user", ("INCOME", "COMPLETED", "70.00"))

    await TransferService(db, "short-lived-user").request_transfer(Decimal("20.00"))
    gc.collect()

    assert "short-lived-user" not in transfer_service._owner_locks


async def test_missing_amount_is_validation_error(db, seed):
    await seed(OWNER, ("INCOME", "COMPLETED", "70.00"))

    with pytest.raises(ValidationError, match="Informe"):
        await TransferService(db, OWNER).request_transfer(None)

    assert (await LedgerService(db, OWNER).list_transactions()).total == 1
