"""
Hierarquia de erros de domínio.

Cada classe carrega o status HTTP com que o handler global em main.py
responde, mantendo o formato { data, error, meta }.
"""


class PixDashboardError(Exception):
    """Base para todos os erros de domínio."""

    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(PixDashboardError):
    """Valor ou descrição ausente/inválido, ou abaixo do mínimo."""

    status_code = 400


class AuthenticationError(PixDashboardError):
    status_code = 401


class ChargeNotFoundError(PixDashboardError):
    """Cobrança inexistente ou pertencente a outro usuário."""

    status_code = 404


class InsufficientBalanceError(PixDashboardError):
    status_code = 409

    def __init__(self, requested, available) -> None:
        self.requested = requested
        self.available = available
        super().__init__(
            f"Saldo insuficiente para transferência: solicitado {requested}, disponível {available}"
        )


class UpstreamGatewayError(PixDashboardError):
    """Resposta não-2xx ou malformada da API de terceiros."""

    status_code = 502

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        self.upstream_status = upstream_status
        super().__init__(message)


class GatewayTimeoutError(UpstreamGatewayError):
    status_code = 504
    retryable = True


class PersistenceError(PixDashboardError):
    """Falha de leitura/escrita no ledger."""

    status_code = 500
