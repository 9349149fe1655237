# grantplan/core/config.py
import json
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# ================== ENV ==================

ROOT_DIR = Path(__file__).resolve().parents[2]
load_dotenv(ROOT_DIR / "grantplan/.env", override=False)


def env(*names: str, default: Optional[str] = None) -> str:
    for n in names:
        v = os.environ.get(n)
        if v is not None and str(v).strip() != "":
            return v
    if default is not None:
        return default
    raise KeyError(f"Missing required env var. Tried: {', '.join(names)}")


def env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


TEST_MODE = env_flag("TEST_MODE")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", f"{FRONTEND_URL},http://localhost:3001").split(",")
    if o.strip()
]
LOG_DIR = os.getenv("LOG_DIR", "logs")

# ================== JWT ==================

JWT_SECRET = os.environ.get("JWT_SECRET", "default_secret_key")
JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_HOURS = int(os.environ.get("JWT_EXPIRATION_HOURS", "24"))

# ================== PAYMENTS ==================

# toss | stripe | mock (mock is only honoured in TEST_MODE)
PAYMENT_GATEWAY = os.getenv("PAYMENT_GATEWAY", "toss").strip().lower()
TOSS_SECRET_KEY = os.getenv("TOSS_SECRET_KEY", "").strip()
TOSS_API_BASE = os.getenv("TOSS_API_BASE", "https://api.tosspayments.com").rstrip("/")
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "").strip()
GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "30"))

# Bank transfers (무통장 입금)
MIN_DEPOSIT_AMOUNT = int(os.getenv("MIN_DEPOSIT_AMOUNT", "1000"))
BANK_TRANSFER_PRODUCT_ID = os.getenv("BANK_TRANSFER_PRODUCT_ID", "business_plan_1")

# ================== PRODUCTS ==================
# price in KRW, credits = number of business plan generations

DEFAULT_PRODUCTS = {
    "business_plan_1": {"name": "AI business plan pass x1", "credits": 1, "price": 50000},
    "business_plan_3": {"name": "AI business plan pass x3", "credits": 3, "price": 79900},
    "business_plan_5": {"name": "AI business plan pass x5", "credits": 5, "price": 119900},
    # legacy ids still sent by older clients
    "credit-1": {"name": "AI business plan pass x1", "credits": 1, "price": 50000},
    "credit-3": {"name": "AI business plan pass x3", "credits": 3, "price": 79900},
    "credit-5": {"name": "AI business plan pass x5", "credits": 5, "price": 119900},
}


def get_product_config() -> dict:
    """Product table from PRODUCTS_JSON, falling back to the built-in table."""
    raw = os.getenv("PRODUCTS_JSON", "").strip()
    if not raw:
        return dict(DEFAULT_PRODUCTS)
    return json.loads(raw)

# ================== DATABASE ==================

DATABASE_URL = os.environ.get("DATABASE_URL", "")


def get_database_url() -> str:
    """Get database URL - supports SQLite or MySQL."""
    if DATABASE_URL:
        return DATABASE_URL

    mysql_host = os.environ.get("MYSQL_HOST")
    if mysql_host:
        mysql_port = int(os.environ.get("MYSQL_PORT", "3306"))
        mysql_user = os.environ.get("MYSQL_USER", "root")
        mysql_password = os.environ.get("MYSQL_PASSWORD", "")
        mysql_db = os.environ.get("MYSQL_DB", "grantplan")
        return f"mysql+aiomysql://{mysql_user}:{mysql_password}@{mysql_host}:{mysql_port}/{mysql_db}?charset=utf8mb4"

    # Default to SQLite
    db_path = ROOT_DIR / "grantplan" / "grantplan.db"
    return f"sqlite+aiosqlite:///{db_path}"
