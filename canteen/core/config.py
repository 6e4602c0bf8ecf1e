import os
from dotenv import load_dotenv

# Load .env from the project root
load_dotenv()


def _env_flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./canteen.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_TEST = ENV_NORMALIZED == "test"
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

# Session cookie (signed)
SESSION_SECRET = os.getenv("SESSION_SECRET", "dev-canteen-secret" if (IS_DEV or IS_TEST) else "")
SESSION_MAX_AGE_SECONDS = int(os.getenv("SESSION_MAX_AGE_SECONDS", "604800"))
SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE", "0" if IS_DEV or IS_TEST else "1")
SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "lax").strip().lower()
if SESSION_COOKIE_SAMESITE not in {"lax", "strict", "none"}:
    SESSION_COOKIE_SAMESITE = "lax"
SESSION_COOKIE_DOMAIN = os.getenv("SESSION_COOKIE_DOMAIN", "").strip() or None

# Admin routes only require the admin role when enabled.
ADMIN_ROLE_REQUIRED = _env_flag("ADMIN_ROLE_REQUIRED")

DEV_ADMIN_EMAIL = os.getenv("DEV_ADMIN_EMAIL", "admin@mec.edu").strip()
DEV_ADMIN_NAME = os.getenv("DEV_ADMIN_NAME", "Canteen Manager").strip()
DEV_ADMIN_PASSWORD = os.getenv("DEV_ADMIN_PASSWORD", "").strip()
