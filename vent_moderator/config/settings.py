from typing import Optional, Dict, Any, List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import PostgresDsn, Field, field_validator
from pathlib import Path

# Define the root directory of the vent_moderator package
SERVICE_ROOT_DIR = Path(__file__).parent.parent.resolve()
# Path to the repository root (two levels up from this settings.py)
PROJECT_ROOT_DIR = SERVICE_ROOT_DIR.parent

class Settings(BaseSettings):
    # Application settings
    APP_NAME: str = "VentModerator"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3000

    # Telegram bot settings
    BOT_TOKEN: str = ""
    BOT_USERNAME: Optional[str] = None # Used when getMe cannot be reached at startup
    ADMIN_ID: str = ""
    CHANNEL_ID: str = ""
    CHANNEL_SIGNATURE: str = "AMU Vent (@amuvent)"
    TELEGRAM_API_BASE_URL: str = "https://api.telegram.org"
    TRANSPORT_TIMEOUT_SECONDS: float = 10.0
    POLL_TIMEOUT_SECONDS: int = 30
    POLL_RETRY_DELAY_SECONDS: float = 5.0

    # Public numbering
    START_VENT_NUMBER: int = 1

    # Database settings
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "user"
    DB_PASSWORD: str = "password"
    DB_NAME: str = "vent_db"
    DB_COMMAND_TIMEOUT_SECONDS: float = 10.0
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("DATABASE_URL", mode='before')
    @classmethod
    def assemble_db_connection(cls, v: Optional[str], values: Dict[str, Any]) -> Any:
        if isinstance(v, str):
            return v
        db_user = values.data.get("DB_USER")
        db_password = values.data.get("DB_PASSWORD")
        db_host = values.data.get("DB_HOST")
        db_port = values.data.get("DB_PORT")
        db_name = values.data.get("DB_NAME")

        return str(PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=db_user,
            password=db_password,
            host=db_host,
            port=int(db_port),
            path=f"{db_name or ''}",
        ))

    @field_validator("START_VENT_NUMBER", mode='after')
    @classmethod
    def default_start_number(cls, v: int) -> int:
        # Zero or negative start values fall back to 1
        return v if v > 0 else 1

    @field_validator("ADMIN_ID", "CHANNEL_ID", mode='before')
    @classmethod
    def stringify_chat_id(cls, v: Any) -> str:
        return str(v).strip() if v is not None else ""

    # Logging configuration path (can be overridden by env var)
    LOGGING_CONFIG_PATH: str = str(SERVICE_ROOT_DIR / "config" / "logging_config.yaml")

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT_DIR / ".env"),  # Load variables from project root .env
        env_file_encoding='utf-8',
        extra='ignore'
    )

    def missing_required(self) -> List[str]:
        """
        Names of the settings the bot cannot run without.

        Returns:
            List[str]: Setting names that are unset or blank.
        """
        required = {
            "BOT_TOKEN": self.BOT_TOKEN,
            "ADMIN_ID": self.ADMIN_ID,
            "CHANNEL_ID": self.CHANNEL_ID,
        }
        return [name for name, value in required.items() if not value]


# Instantiate settings
settings = Settings()
