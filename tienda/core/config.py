from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = Field(default="Tienda", alias="APP_NAME")
    app_env: str = Field(default="dev", alias="APP_ENV")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    database_url: str = Field(default="sqlite:///./tienda.db", alias="DATABASE_URL")
    store_name: str = Field(default="Rythmo Music Store", alias="STORE_NAME")
    store_email: str = Field(default="contacto@rythmo.com", alias="STORE_EMAIL")
    base_currency: str = Field(default="MXN", alias="BASE_CURRENCY")
    default_country: str = Field(default="MX", alias="DEFAULT_COUNTRY")
    gift_wrap_fee: Decimal = Field(default=Decimal("20.00"), alias="GIFT_WRAP_FEE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    invoice_dir: str = Field(default="data/invoices", alias="INVOICE_DIR")
    idempotency_ttl: int = Field(default=3600, alias="IDEMPOTENCY_TTL")

    class Config:
        env_file = ".env"


settings = Settings()
