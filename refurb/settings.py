# refurb/settings.py
from pathlib import Path
from fastapi.templating import Jinja2Templates
import os
from dotenv import load_dotenv

load_dotenv()

def _env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}

def _env_list(name: str, default: list[str] | None = None) -> list[str]:
    val = os.getenv(name)
    if not val:
        return default or []
    return [v.strip() for v in val.split(",") if v.strip()]

BASE_DIR = Path(__file__).resolve().parent.parent  # project root
PACKAGE_DIR = Path(__file__).resolve().parent

# sqlite by default; point at the hosted Postgres with DATABASE_URL=postgresql+psycopg2://...
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'refurb.db'}")

SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")  # override via ENV/.env
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480"))

# Security & networking
CORS_ORIGINS = _env_list("CORS_ORIGINS", default=["*"])  # e.g. "http://localhost:5173,https://shop.example.com"
ALLOWED_HOSTS = _env_list("ALLOWED_HOSTS", default=["*"])
COOKIE_SECURE = _env_bool("COOKIE_SECURE", False)  # set True behind HTTPS
ENABLE_HTTPS_REDIRECT = _env_bool("ENABLE_HTTPS_REDIRECT", False)

# Shop floor
KNOWN_TECHNICIANS = _env_list("KNOWN_TECHNICIANS", default=["Hasan", "Mehmet", "Emre"])
DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@example.com")
DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD", "Admin123!")
SHOP_NAME = os.getenv("SHOP_NAME", "TAMMOBIL YENILEME MERKEZI")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

templates = Jinja2Templates(directory=str(PACKAGE_DIR / "templates"))
