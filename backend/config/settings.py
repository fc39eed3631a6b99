# backend/config/settings.py
import os
from urllib.parse import quote_plus
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def _build_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    db_host = os.getenv("DB_HOST", "").strip()
    db_name = os.getenv("DB_NAME", "").strip()
    db_user = os.getenv("DB_USER", "").strip()
    db_password = os.getenv("DB_PASSWORD", "").strip()
    db_port = os.getenv("DB_PORT", "1433").strip()

    if not all([db_host, db_name, db_user, db_password]):
        return "sqlite:///./foodshare.db"

    odbc_str = (
        "DRIVER=ODBC Driver 17 for SQL Server;"
        f"SERVER={db_host},{db_port};"
        f"DATABASE={db_name};"
        f"UID={db_user};"
        f"PWD={db_password};"
        "Encrypt=yes;"
        "TrustServerCertificate=yes;"
        "Connection Timeout=30;"
    )
    return "mssql+pyodbc:///?odbc_connect=" + quote_plus(odbc_str)


DATABASE_URL = _build_database_url()
SQL_ECHO = _env_bool("SQL_ECHO")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# pickup codes
PICKUP_CODE_LENGTH = int(os.getenv("PICKUP_CODE_LENGTH", "8"))

# dynamic pricing
DISCOUNT_RATE_PER_HOUR = float(os.getenv("DISCOUNT_RATE_PER_HOUR", "0.05"))
MAX_DISCOUNT_FRACTION = float(os.getenv("MAX_DISCOUNT_FRACTION", "0.5"))
DISCOUNT_WINDOW_HOURS = float(os.getenv("DISCOUNT_WINDOW_HOURS", "24"))

# delivery
HOME_DELIVERY_FEE = float(os.getenv("HOME_DELIVERY_FEE", "50.00"))

# listing search
SEARCH_PAGE_LIMIT = int(os.getenv("SEARCH_PAGE_LIMIT", "20"))
SEARCH_MAX_LIMIT = int(os.getenv("SEARCH_MAX_LIMIT", "50"))
