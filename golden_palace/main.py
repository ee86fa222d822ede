import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from golden_palace.core.config import settings
from golden_palace.core.errors import register_error_handlers
from golden_palace.db.session import create_engine_from_settings, create_session_factory
import golden_palace.routers.health as health
import golden_palace.routers.reservations as reservations


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s reservation API (%s)", settings.RESTAURANT_NAME, settings.ENVIRONMENT)
    if not settings.mail_enabled:
        logger.warning("EMAIL_USER/EMAIL_PASS not set - reservation emails disabled")
    engine = create_engine_from_settings(settings)
    app.state.session_factory = create_session_factory(engine)
    try:
        yield
    finally:
        await engine.dispose()


app = FastAPI(
    title=f"{settings.RESTAURANT_NAME} API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["POST"],
    allow_headers=["Content-Type"],
)

register_error_handlers(app)

app.include_router(health.router, prefix=settings.API_PREFIX)
app.include_router(reservations.router, prefix=settings.API_PREFIX)
