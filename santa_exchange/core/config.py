import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str
    log_path: str
    host: str
    port: int


def load_settings() -> Settings:
    database_url = os.getenv("DATABASE_URL")
    log_level = os.getenv("LOG_LEVEL", "INFO")
    log_path = os.getenv("LOG_PATH", "logs/santa_exchange.log")
    host = os.getenv("HOST", "0.0.0.0")
    raw_port = os.getenv("PORT", "8080")

    if not database_url:
        raise ValueError("DATABASE_URL is required. Set it in the environment or .env file.")
    try:
        port = int(raw_port)
    except ValueError:
        raise ValueError(f"PORT must be an integer, got {raw_port!r}.") from None

    return Settings(
        database_url=database_url,
        log_level=log_level,
        log_path=log_path,
        host=host,
        port=port,
    )
