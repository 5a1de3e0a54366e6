"""
Configuração centralizada da aplicação.
Lê todas as variáveis de ambiente usando pydantic-settings.
NUNCA colocar valores sensíveis hardcoded aqui.
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Banco de dados ------------------------------------------------------
    # URL assíncrona (asyncpg) usada pelo servidor FastAPI
    DATABASE_URL: str

    # URL síncrona (psycopg2) usada exclusivamente pelo Alembic
    DATABASE_SYNC_URL: str

    # --- Segurança -----------------------------------------------------------
    # Chave para assinar tokens JWT. Gerar com: secrets.token_hex(32)
    SECRET_KEY: str

    # Senha do operador para emitir tokens em POST /auth/token
    APP_PASSWORD: str

    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # --- Aplicação -----------------------------------------------------------
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"

    # Origens CORS permitidas (string separada por vírgulas)
    CORS_ORIGINS: str = "http://localhost:5173"

    # --- Gateway PIX (Asaas) -------------------------------------------------
    ASAAS_API_KEY: str = ""
    ASAAS_API_BASE_URL: str = "https://www.asaas.com/api/v3"

    # Timeout explícito das chamadas ao gateway; ao expirar vira GatewayTimeoutError
    GATEWAY_TIMEOUT_SECONDS: float = 15.0

    # --- Propriedades calculadas ---------------------------------------------
    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @field_validator("GATEWAY_TIMEOUT_SECONDS")
    @classmethod
    def validate_gateway_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("GATEWAY_TIMEOUT_SECONDS deve ser > 0")
        return v

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        allowed = {"development", "production", "test"}
        if v not in allowed:
            raise ValueError(f"APP_ENV deve ser um de: {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL deve ser um de: {allowed}")
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    """Instância singleton de Settings, cacheada para evitar releitura do .env."""
    return Settings()


# Exportação conveniente para importar diretamente em outros módulos
settings: Settings = get_settings()
