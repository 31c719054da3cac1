import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eventcredits.api.endpoints import admin, admin_auth, register
from eventcredits.core.database import Base, engine
from eventcredits.core.logging_config import configure_logging
from eventcredits.core.settings import settings
from eventcredits.models.credit import Credit  # noqa: F401
from eventcredits.models.eligible_user import EligibleUser  # noqa: F401
from eventcredits.services.notifications import build_notifier


logger = logging.getLogger(__name__)

app = FastAPI(title="Event Credits API")

# Configure CORS
origins = settings.resolved_cors_origins()
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.state.notifier = build_notifier(settings)


@app.on_event("startup")
def startup() -> None:
    configure_logging()
    if not settings.admin_login_configured:
        if settings.is_production:
            raise RuntimeError("ADMIN_PASSWORD and SESSION_SECRET must be set in production")
        logger.warning("startup.admin_login_disabled reason=missing_admin_password_or_session_secret")
    if settings.db_auto_create:
        Base.metadata.create_all(bind=engine)
    logger.info("startup.ready environment=%s notifier=%s", settings.environment, type(app.state.notifier).__name__)


# API Routes
app.include_router(register.router, prefix="/api", tags=["register"])
app.include_router(admin_auth.router, prefix="/api", tags=["admin"])
app.include_router(admin.router, prefix="/api", tags=["admin"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
