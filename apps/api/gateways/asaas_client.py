"""
Cliente HTTP para a API REST do Asaas (cobranças PIX).

Regras:
- Autenticação pelo header `access_token` em todas as chamadas
- Timeout explícito; expiração vira GatewayTimeoutError (retryable)
- Sem retry automático: o erro sobe para quem chamou
- Respostas não-2xx ou malformadas viram UpstreamGatewayError com a mensagem do Asaas
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
import structlog

from core.exceptions import GatewayTimeoutError, UpstreamGatewayError, ValidationError

logger = structlog.get_logger(__name__)

PIX_CHARGE_TTL = timedelta(hours=24)
RECEIVED_STATUS = "RECEIVED"


# ---------------------------------------------------------------------------
# Tipos de retorno
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PixCharge:
    charge_id: str
    qr_payload: str      # copia-e-cola
    qr_image: str        # PNG em base64
    expires_at: str | None


@dataclass(frozen=True)
class PaymentStatus:
    charge_id: str
    status: str          # PENDING | RECEIVED | CONFIRMED | OVERDUE | ...
    value: Decimal | None
    paid_at: date | None

    @property
    def is_received(self) -> bool:
        return self.status == RECEIVED_STATUS


# ---------------------------------------------------------------------------
# Cliente principal
# ---------------------------------------------------------------------------


class AsaasClient:
    """
    Cliente assíncrono para a API do Asaas.

    Uso:
        async with AsaasClient(api_key) as client:
            charge = await client.create_pix_charge(Decimal("50.00"), "Venda #12")

    O http_client é injetável para facilitar testes unitários.
    NUNCA logar api_key.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://www.asaas.com/api/v3",
        timeout: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout),
            headers={"access_token": self._api_key, "Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "AsaasClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # -----------------------------------------------------------------------
    # Request base
    # -----------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        error_message: str = "Erro na API do Asaas",
    ) -> dict:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            logger.warning("asaas.timeout", method=method, path=path)
            raise GatewayTimeoutError(f"Tempo esgotado ao chamar o gateway PIX ({path})") from exc
        except httpx.HTTPError as exc:
            logger.warning("asaas.network_error", method=method, path=path, error=str(exc))
            raise UpstreamGatewayError(f"Falha de comunicação com o gateway PIX: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code >= 400:
            message = _upstream_message(data) or error_message
            logger.warning("asaas.error_response", status=response.status_code, path=path, message=message)
            raise UpstreamGatewayError(message, upstream_status=response.status_code)

        if not isinstance(data, dict):
            raise UpstreamGatewayError(
                f"Resposta malformada do gateway PIX ({path})",
                upstream_status=response.status_code,
            )
        return data

    # -----------------------------------------------------------------------
    # Cobranças PIX
    # -----------------------------------------------------------------------

    async def create_pix_charge(
        self,
        value: Decimal,
        description: str | None,
        now: datetime | None = None,
    ) -> PixCharge:
        """
        POST /payments (billingType=PIX, vencimento em 24h) seguido de
        GET /payments/{id}/pixQrCode para obter payload e imagem.
        """
        if value <= Decimal("0"):
            raise ValidationError("O valor da cobrança deve ser positivo")

        due = ((now or datetime.now(timezone.utc)) + PIX_CHARGE_TTL).date()
        payment = await self._request(
            "POST",
            "/payments",
            json={
                "billingType": "PIX",
                "value": float(value),  # o Asaas só aceita número JSON
                "description": description,
                "dueDate": due.isoformat(),
            },
            error_message="Erro ao criar cobrança PIX",
        )
        charge_id = payment.get("id")
        if not charge_id:
            raise UpstreamGatewayError("Resposta do gateway PIX sem id de cobrança")
        logger.info("asaas.charge_created", charge_id=charge_id)

        qr = await self._request(
            "GET",
            f"/payments/{charge_id}/pixQrCode",
            error_message="Erro ao gerar QR Code PIX",
        )
        if not qr.get("payload") or not qr.get("encodedImage"):
            raise UpstreamGatewayError("Resposta do QR Code PIX incompleta")

        return PixCharge(
            charge_id=str(charge_id),
            qr_payload=qr["payload"],
            qr_image=qr["encodedImage"],
            expires_at=qr.get("expirationDate"),
        )

    async def get_payment_status(self, charge_id: str) -> PaymentStatus:
        """GET /payments/{id}: status atual da cobrança (consulta sob demanda)."""
        payment = await self._request(
            "GET",
            f"/payments/{charge_id}",
            error_message="Erro ao verificar status do pagamento",
        )
        status = payment.get("status")
        if not status:
            raise UpstreamGatewayError("Resposta do gateway PIX sem status")

        return PaymentStatus(
            charge_id=charge_id,
            status=str(status),
            value=_to_decimal(payment.get("value")),
            paid_at=_to_date(payment.get("paymentDate")),
        )


# ---------------------------------------------------------------------------
# Helpers de parsing
# ---------------------------------------------------------------------------


def _upstream_message(data: Any) -> str | None:
    """O Asaas devolve {"errors": [{"code", "description"}]}; alguns proxies usam "message"."""
    if not isinstance(data, dict):
        return None
    errors = data.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        return errors[0].get("description")
    return data.get("message")


def _to_decimal(raw: Any) -> Decimal | None:
    if raw is None:
        return None
    try:
        return Decimal(str(raw))
    except InvalidOperation as exc:
        raise UpstreamGatewayError(f"Valor inválido na resposta do gateway PIX: {raw!r}") from exc


def _to_date(raw: Any) -> date | None:
    if not raw:
        return None
    try:
        return date.fromisoformat(str(raw)[:10])
    except ValueError as exc:
        raise UpstreamGatewayError(f"Data inválida na resposta do gateway PIX: {raw!r}") from exc
