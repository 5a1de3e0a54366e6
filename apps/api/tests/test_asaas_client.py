"""
Testes do cliente Asaas.
Não precisam de banco de dados.
O httpx.AsyncClient é injetado como mock para isolar a rede.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from core.exceptions import GatewayTimeoutError, UpstreamGatewayError, ValidationError
from gateways.asaas_client import AsaasClient

API_KEY = "test_asaas_key_abc123"
BASE_URL = "https://sandbox.asaas.com/api/v3"

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def make_mock_response(json_body: object, status_code: int = 200) -> MagicMock:
    """Cria um MagicMock de httpx.Response."""
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status_code
    resp.json.return_value = json_body
    return resp


def make_client(mock_responses: list) -> tuple[AsaasClient, AsyncMock]:
    """
    Cria um AsaasClient com http_client mockado.
    mock_responses: valores (ou exceções) que .request() devolve em ordem.
    """
    mock_http = AsyncMock(spec=httpx.AsyncClient)
    mock_http.request = AsyncMock(side_effect=mock_responses)
    mock_http.aclose = AsyncMock()
    client = AsaasClient(api_key=API_KEY, base_url=BASE_URL, http_client=mock_http)
    return client, mock_http


PAYMENT = {"id": "pay_123", "status": "PENDING", "value": 50.0}
QR_CODE = {
    "payload": "00020126580014br.gov.bcb.pix",
    "encodedImage": "iVBORw0KGgo=",
    "expirationDate": "2025-03-11 23:59:59",
}

# ---------------------------------------------------------------------------
# Testes: create_pix_charge
# ---------------------------------------------------------------------------


async def test_create_pix_charge_returns_payload_and_image():
    client, mock_http = make_client([make_mock_response(PAYMENT), make_mock_response(QR_CODE)])
    now = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

    charge = await client.create_pix_charge(Decimal("50.00"), "Venda #1", now=now)

    assert charge.charge_id == "pay_123"
    assert charge.qr_payload == QR_CODE["payload"]
    assert charge.qr_image == QR_CODE["encodedImage"]
    assert charge.expires_at == "2025-03-11 23:59:59"

    create_call, qr_call = mock_http.request.await_args_list
    assert create_call.args == ("POST", "/payments")
    assert create_call.kwargs["json"] == {
        "billingType": "PIX",
        "value": 50.0,
        "description": "Venda #1",
        "dueDate": "2025-03-11",
    }
    assert qr_call.args == ("GET", "/payments/pay_123/pixQrCode")


@pytest.mark.parametrize("value", ["0", "-10.00"])
async def test_create_pix_charge_rejects_non_positive_value_without_calling(value):
    client, mock_http = make_client([])

    with pytest.raises(ValidationError):
        await client.create_pix_charge(Decimal(value), "Venda")

    mock_http.request.assert_not_awaited()


async def test_create_pix_charge_surfaces_asaas_error_description():
    body = {"errors": [{"code": "invalid_value", "description": "O valor deve ser maior que zero"}]}
    client, _ = make_client([make_mock_response(body, status_code=400)])

    with pytest.raises(UpstreamGatewayError) as exc_info:
        await client.create_pix_charge(Decimal("50.00"), "Venda")

    assert exc_info.value.message == "O valor deve ser maior que zero"
    assert exc_info.value.upstream_status == 400
    assert exc_info.value.status_code == 502


async def test_create_pix_charge_uses_default_message_without_error_body():
    client, _ = make_client([make_mock_response(None, status_code=500)])

    with pytest.raises(UpstreamGatewayError, match="Erro ao criar cobrança PIX"):
        await client.create_pix_charge(Decimal("50.00"), "Venda")


async def test_create_pix_charge_requires_charge_id():
    client, mock_http = make_client([make_mock_response({"status": "PENDING"})])

    with pytest.raises(UpstreamGatewayError):
        await client.create_pix_charge(Decimal("50.00"), "Venda")

    assert mock_http.request.await_count == 1


async def test_create_pix_charge_rejects_incomplete_qr_code():
    client, _ = make_client([make_mock_response(PAYMENT), make_mock_response({"payload": "abc"})])

    with pytest.raises(UpstreamGatewayError, match="incompleta"):
        await client.create_pix_charge(Decimal("50.00"), "Venda")


async def test_timeout_is_retryable_gateway_error():
    client, _ = make_client([httpx.ReadTimeout("timed out")])

    with pytest.raises(GatewayTimeoutError) as exc_info:
        await client.create_pix_charge(Decimal("50.00"), "Venda")

    assert exc_info.value.retryable is True
    assert exc_info.value.status_code == 504


async def test_network_error_is_not_retryable():
    client, _ = make_client([httpx.ConnectError("connection refused")])

    with pytest.raises(UpstreamGatewayError) as exc_info:
        await client.create_pix_charge(Decimal("50.00"), "Venda")

    assert not isinstance(exc_info.value, GatewayTimeoutError)
    assert exc_info.value.retryable is False


async def test_malformed_body_is_upstream_error():
    resp = make_mock_response(None)
    resp.json.side_effect = ValueError("not json")
    client, _ = make_client([resp])

    with pytest.raises(UpstreamGatewayError, match="malformada"):
        await client.create_pix_charge(Decimal("50.00"), "Venda")


# ---------------------------------------------------------------------------
# Testes: get_payment_status
# ---------------------------------------------------------------------------


async def test_get_payment_status_received():
    body = {"id": "pay_123", "status": "RECEIVED", "value": 50.0, "paymentDate": "2025-03-10"}
    client, mock_http = make_client([make_mock_response(body)])

    status = await client.get_payment_status("pay_123")

    assert status.is_received
    assert status.value == Decimal("50.0")
    assert status.paid_at == date(2025, 3, 10)
    mock_http.request.assert_awaited_once_with("GET", "/payments/pay_123", json=None)


async def test_get_payment_status_pending_has_no_paid_at():
    client, _ = make_client([make_mock_response(PAYMENT)])

    status = await client.get_payment_status("pay_123")

    assert not status.is_received
    assert status.paid_at is None


async def test_get_payment_status_requires_status():
    client, _ = make_client([make_mock_response({"id": "pay_123"})])

    with pytest.raises(UpstreamGatewayError):
        await client.get_payment_status("pay_123")


async def test_get_payment_status_rejects_bad_value():
    client, _ = make_client([make_mock_response({"status": "RECEIVED", "value": "abc"})])

    with pytest.raises(UpstreamGatewayError, match="Valor inválido"):
        await client.get_payment_status("pay_123")


async def test_get_payment_status_not_found():
    body = {"errors": [{"code": "invalid_action", "description": "Cobrança não encontrada"}]}
    client, _ = make_client([make_mock_response(body, status_code=404)])

    with pytest.raises(UpstreamGatewayError) as exc_info:
        await client.get_payment_status("pay_404")

    assert exc_info.value.upstream_status == 404


# ---------------------------------------------------------------------------
# Testes: ciclo de vida
# ---------------------------------------------------------------------------


async def test_context_manager_closes_http_client():
    client, mock_http = make_client([])

    async with client:
        pass

    mock_http.aclose.assert_awaited_once()


def test_default_client_sends_access_token_header():
    client = AsaasClient(api_key=API_KEY, base_url=BASE_URL + "/")

    assert client._client.headers["access_token"] == API_KEY
    assert str(client._client.base_url) == BASE_URL + "/"
