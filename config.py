from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TEST = "test"


class Settings(BaseSettings):
    # App Config
    app_name: str = "Shop API"
    environment: Environment = Environment.DEVELOPMENT
    log_level: Optional[str] = None
    log_to_file: bool = False
    log_dir: Path = Field(default=Path("data/logs"))

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Storage
    data_dir: Path = Field(default=Path("data"))
    products_filename: str = "products.json"
    carts_filename: str = "carts.json"

    # Pagination
    default_page: int = 1
    max_limit: int = 100

    model_config = SettingsConfigDict(env_prefix="SHOP_", env_file=None, extra="ignore")

    @property
    def products_path(self) -> Path:
        return self.data_dir / self.products_filename

    @property
    def carts_path(self) -> Path:
        return self.data_dir / self.carts_filename

    @property
    def log_file(self) -> Optional[Path]:
        return self.log_dir / "shop.log" if self.log_to_file else None

    @property
    def effective_log_level(self) -> str:
        """Explicit log_level wins, otherwise derive it from the environment."""
        if self.log_level:
            return self.log_level.upper()
        if self.environment == Environment.DEVELOPMENT:
            return "DEBUG"
        if self.environment == Environment.TEST:
            return "WARNING"
        return "INFO"

    def validate_limits(self) -> None:
        """
        Raises ValueError listing every inconsistent setting.
        """
        errors = []
        if not 0 <= self.port <= 65535:
            errors.append("port must be between 0 and 65535")
        if self.max_limit < 1:
            errors.append("max_limit must be at least 1")
        if self.default_page < 1:
            errors.append("default_page must be at least 1")
        if errors:
            raise ValueError(f"Invalid configuration: {', '.join(errors)}")


@lru_cache
def get_settings() -> Settings:
    return Settings()
