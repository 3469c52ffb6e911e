import logging
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Shoppers API"
    DATABASE_URL: str = "sqlite:///./shoppers.db"
    SECRET_KEY: str = "supersecretkey_change_me_in_production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7 # 1 week

    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    # Inventory
    LOW_STOCK_THRESHOLD: int = 10
    CRITICAL_STOCK_THRESHOLD: int = 5

    # Checkout
    FREE_DELIVERY_MIN_AMOUNT: float = 500.0
    DELIVERY_FEE: float = 50.0
    PLATFORM_FEE: float = 20.0
    MAX_CART_ITEM_QUANTITY: int = 10

    # OTP
    OTP_EXPIRE_MINUTES: int = 10

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()


def setup_logging():
    """Configure logging settings"""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
