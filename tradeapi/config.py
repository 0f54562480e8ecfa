from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="tradeapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Naira Crypto Trade API"
    PROJECT_NAME: str = "Naira Crypto Trade API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = ""
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = ""

    # 직접 지정하면 POSTGRES_* 값보다 우선 (로컬 개발은 SQLite 파일)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    SQLITE_BUSY_TIMEOUT_SECONDS: int = 30

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        if not self.POSTGRES_HOST:
            return "sqlite:///./tradeapi.db"

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Security
    SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # CoinGecko (가격 오라클)
    COINGECKO_BASE_URL: str = "https://api.coingecko.com/api/v3"
    COINGECKO_API_KEY: Optional[str] = None  # Pro API 사용 시에만
    COINGECKO_CACHE_TTL: int = 60  # 가격 캐시 유지 시간 (초)
    COINGECKO_TIMEOUT_SECONDS: float = 10.0

    # Redis (가격 캐시, 없으면 캐시 없이 동작)
    REDIS_HOST: str = ""
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    # Wallet
    DEFAULT_CURRENCY: str = "NGN"
    MIN_WALLET_OPERATION_AMOUNT: float = 100  # 입금/출금 최소 금액
    MAX_WALLET_OPERATION_AMOUNT: float = 10_000_000  # 입금/출금 최대 금액

    # Fee defaults (scripts/seed_data.py 에서 사용)
    DEFAULT_BUY_FEE_PERCENTAGE: float = 1.5
    DEFAULT_SELL_FEE_PERCENTAGE: float = 1.5
    DEFAULT_MINIMUM_TRADE_AMOUNT: float = 1000

    # Timezone
    TIMEZONE: str = "Africa/Lagos"


settings = Settings()
