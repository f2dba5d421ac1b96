"""
Application Configuration
Çevre değişkenlerinden yapılandırma yüklenir
"""

from pydantic_settings import BaseSettings
from functools import lru_cache
from pydantic import Field


class Settings(BaseSettings):
    """Uygulama ayarları"""

    # Application
    app_name: str = Field("Marketplace Profitability API", alias="APP_NAME")
    app_version: str = Field("1.0.0", alias="APP_VERSION")
    debug: bool = Field(False, alias="DEBUG")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Server
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(8000, alias="PORT")

    # Security (boş bırakılırsa API key kontrolü yapılmaz)
    api_key: str = Field("", alias="API_KEY")

    # CORS
    allowed_origins: str = Field("*", alias="ALLOWED_ORIGINS")

    # Profitability engine
    cost_data_currency: str = Field("USD", alias="COST_DATA_CURRENCY")
    reporting_currency: str = Field("USD", alias="REPORTING_CURRENCY")
    default_refund_recovery_rate: float = Field(0.30, alias="DEFAULT_REFUND_RECOVERY_RATE")
    mixed_fba_share: float = Field(0.5, alias="MIXED_FBA_SHARE")
    local_warehouse_marketplace: str = Field("US", alias="LOCAL_WAREHOUSE_MARKETPLACE")
    top_products_limit: int = Field(5, alias="TOP_PRODUCTS_LIMIT")
    analysis_cache_ttl_seconds: int = Field(60, alias="ANALYSIS_CACHE_TTL_SECONDS")
    max_workers: int = Field(4, alias="MAX_WORKERS")

    # Exchange rates (Frankfurter, ECB verisi)
    exchange_rate_api_url: str = Field("https://api.frankfurter.app", alias="EXCHANGE_RATE_API_URL")
    exchange_rate_timeout: int = Field(5, alias="EXCHANGE_RATE_TIMEOUT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_prefix = ""
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Settings singleton"""
    return Settings()
