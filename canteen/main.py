import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from canteen.core.config import (
    CORS_ORIGINS,
    DATABASE_URL,
    DEV_ADMIN_EMAIL,
    DEV_ADMIN_NAME,
    DEV_ADMIN_PASSWORD,
    ENV,
)
from canteen.core.database import Base, SessionLocal, engine
from canteen.core.errors import register_exception_handlers
from canteen.core.logging_setup import configure_logging
from canteen.core.startup_checks import ensure_migrations_applied, validate_database_environment
from canteen.middleware.observability import ObservabilityMiddleware
from canteen.middleware.user_session import UserSessionMiddleware
import canteen.models  # registers every table on Base.metadata before create_all

from canteen.routers.auth import router as auth_router
from canteen.routers.cart import router as cart_router
from canteen.routers.internal_metrics import router as internal_metrics_router
from canteen.routers.menu import router as menu_router
from canteen.routers.orders import router as orders_router
from canteen.services.users import upsert_admin

configure_logging()

logger = logging.getLogger(__name__)
BOOTSTRAP_PREFIX = "[ADMIN_BOOTSTRAP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini")))


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Campus Canteen API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(UserSessionMiddleware)
# Added last so it wraps everything and sees the final status code
app.add_middleware(ObservabilityMiddleware)

register_exception_handlers(app)


def _bootstrap_initial_admin() -> None:
    if not DEV_ADMIN_PASSWORD:
        logger.info("%s skipped: configure DEV_ADMIN_PASSWORD.", BOOTSTRAP_PREFIX)
        return

    logger.info("%s start email=%s", BOOTSTRAP_PREFIX, DEV_ADMIN_EMAIL)
    db = SessionLocal()
    try:
        admin, created = upsert_admin(
            db,
            email=DEV_ADMIN_EMAIL,
            name=DEV_ADMIN_NAME,
            password=DEV_ADMIN_PASSWORD,
        )
        logger.info(
            "%s %s id=%s email=%s",
            BOOTSTRAP_PREFIX,
            "created" if created else "exists",
            admin.id,
            admin.email,
        )
    except Exception:
        logger.exception("%s ERROR bootstrap failed", BOOTSTRAP_PREFIX)
        raise
    finally:
        db.close()


def _startup_tasks() -> None:
    logger.info("Starting canteen API env=%s", ENV)
    validate_database_environment()
    if DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
    _bootstrap_initial_admin()


app.include_router(menu_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(auth_router)
app.include_router(internal_metrics_router)


@app.get("/")
def root():
    return {"status": "ok", "service": "canteen"}


@app.get("/health")
def health():
    return {"status": "ok"}
