# hmis/core/config.py
import os
from typing import List
from pydantic import BaseModel
from dotenv import load_dotenv
from urllib.parse import quote_plus

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "HMIS Patient Workflow")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api")

    # CORS (env takes priority)
    BACKEND_CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ))

    # ---------- MySQL ----------
    MYSQL_HOST: str = os.getenv("MYSQL_HOST", "localhost")
    MYSQL_PORT: int = int(os.getenv("MYSQL_PORT", "3306"))
    MYSQL_USER: str = os.getenv("MYSQL_USER", "hmis_user")
    MYSQL_PASSWORD: str = os.getenv("MYSQL_PASSWORD", "hmis")
    MYSQL_DB: str = os.getenv("MYSQL_DB", "hmis")
    DB_DRIVER: str = os.getenv("DB_DRIVER", "pymysql")

    # DATABASE_URL wins when set (sqlite:// in tests)
    SQLALCHEMY_DATABASE_URI: str = os.getenv("DATABASE_URL") or (
        f"mysql+{DB_DRIVER}://{quote_plus(MYSQL_USER)}:{quote_plus(MYSQL_PASSWORD)}"
        f"@{MYSQL_HOST}:{MYSQL_PORT}/{MYSQL_DB}")
    AUTO_CREATE_TABLES: bool = _flag("AUTO_CREATE_TABLES")

    # ---------- Security ----------
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-this")
    JWT_ALG: str = os.getenv("JWT_ALG", "HS256")

    # ---------- Locale ----------
    TIMEZONE: str = os.getenv("TIMEZONE", "Africa/Addis_Ababa")

    # ---------- Numbering ----------
    QUEUE_TICKET_PAD: int = int(os.getenv("QUEUE_TICKET_PAD", "3"))
    DOCUMENT_NUMBER_PAD: int = int(os.getenv("DOCUMENT_NUMBER_PAD", "6"))

    # ---------- Inventory ----------
    INVENTORY_ALLOW_NEGATIVE_STOCK: bool = _flag(
        "INVENTORY_ALLOW_NEGATIVE_STOCK")

    # ---------- Outbox ----------
    OUTBOX_MAX_ATTEMPTS: int = int(os.getenv("OUTBOX_MAX_ATTEMPTS", "5"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
