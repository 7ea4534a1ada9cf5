# oauth2_docstore/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
import logging
from pathlib import Path

# Configure logging for the package when the host application has not configured logging itself
logger = logging.getLogger(__name__)
if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(name)s - [%(levelname)s] - %(message)s'
    )

# This settings.py file is at <project>/oauth2_docstore/settings.py
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
DOTENV_PATH = PROJECT_ROOT / ".env"

DEFAULT_CLIENT_STORE_COLLECTION = "oauth2_clients"
DEFAULT_TOKEN_STORE_COLLECTION = "oauth2_tokens"


class Settings(BaseSettings):
    """Adapter settings with environment variable support."""

    app_name: str = "OAuth2 DocStore"
    debug_mode: bool = False
    log_level: str = "INFO"

    # Backing collections for each entity kind
    oauth2_client_collection: str = Field(
        default=DEFAULT_CLIENT_STORE_COLLECTION,
        description="Collection holding OAuth2 client records."
    )
    oauth2_token_collection: str = Field(
        default=DEFAULT_TOKEN_STORE_COLLECTION,
        description="Collection holding OAuth2 token records."
    )

    # Embedded SQLite document backend
    sqlite_db_path: str = "./oauth2_docstore.sqlite3"

    model_config = SettingsConfigDict(
        env_file=DOTENV_PATH if DOTENV_PATH.exists() else None,
        extra="ignore",
        env_file_encoding='utf-8'
    )

    @field_validator("oauth2_client_collection", "oauth2_token_collection")
    @classmethod
    def _collection_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("collection name must not be empty")
        return value

    def effective_log_level(self) -> int:
        """Log level for package loggers, forced to DEBUG in debug mode."""
        if self.debug_mode:
            return logging.DEBUG
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO


# Initialize settings instance
settings = Settings()

logger.debug(
    f"Settings loaded: client collection '{settings.oauth2_client_collection}', "
    f"token collection '{settings.oauth2_token_collection}', "
    f"sqlite path '{settings.sqlite_db_path}', debug_mode={settings.debug_mode}"
)

# Package loggers follow the configured level
logging.getLogger("oauth2_docstore").setLevel(settings.effective_log_level())
