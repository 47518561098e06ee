from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# .env na raiz do projeto: qrlove/core/config.py -> qrlove/core -> qrlove -> raiz
_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _ROOT / ".env"

# Chave secreta da Stripe só é considerada válida com um destes prefixos
STRIPE_SECRET_PREFIXES = ("sk_", "rk_")


class Settings(BaseSettings):
    secret_key: str = "change-me-in-production"
    database_url: str = "sqlite:///./qrlove.db"
    # URL pública do site; usada nos links de sucesso e no QR code
    base_url: str = "http://localhost:7500"
    # CORS: lista de origins separada por vírgula
    cors_origins: str = "*"
    # Páginas públicas (/success, /pages), por IP
    rate_limit_per_minute: int = 60
    # Criação de sessão de checkout e prévia de preço (por IP)
    rate_limit_checkout_per_minute: int = 10
    # Stripe: checkout hospedado, códigos promocionais e webhook
    stripe_secret_key: str = ""
    stripe_publishable_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_api_base: str = "https://api.stripe.com"
    stripe_timeout_seconds: float = 20.0
    checkout_currency: str = "brl"
    boleto_expires_after_days: int = 5
    # Tolerância (s) entre o timestamp assinado do webhook e o relógio local
    webhook_tolerance_seconds: int = 300
    # Cupom local: used_count só sobe quando o pagamento é confirmado no webhook
    redeem_coupon_on_payment: bool = True
    # Fotos enviadas (original) e processadas (com QR) ficam em media_dir e media_dir/edit
    media_dir: str = "public/media"
    upload_max_mb: int = 10
    # Administrador padrão (scripts/create_admin.py)
    admin_email: str = ""
    admin_password: str = ""
    admin_name: str = "Administrador QRLove"

    model_config = {
        "env_file": _ENV_FILE if _ENV_FILE.is_file() else ".env",
        "extra": "ignore",
    }

    @field_validator("stripe_secret_key", "stripe_publishable_key", "stripe_webhook_secret", mode="before")
    @classmethod
    def strip_stripe_keys(cls, v: str | None) -> str:
        """Espaços de cópia/cola quebram a assinatura das chamadas."""
        return (v or "").strip()

    @field_validator("base_url", mode="before")
    @classmethod
    def strip_base_url(cls, v: str | None) -> str:
        return (v or "").strip().rstrip("/")


settings = Settings()


def is_stripe_configured() -> bool:
    """Existe uma chave secreta da Stripe utilizável?"""
    key = settings.stripe_secret_key
    return bool(key) and key.startswith(STRIPE_SECRET_PREFIXES)


def media_root() -> Path:
    """Diretório de mídia absoluto (relativo à raiz do projeto quando não absoluto)."""
    p = Path(settings.media_dir)
    return p if p.is_absolute() else _ROOT / p
