from datetime import timedelta
from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi.middleware import SlowAPIMiddleware
import logging
from contextlib import asynccontextmanager

from app.core.config import settings
from app.core.database import session_manager, aget_db
from app.core.exceptions import register_exception_handlers
from app.core.limiter import limiter
from app.services.ResendEmailClient import ResendEmailClient
from app.services.SendEmailOtp import Mailer
from app.services.TokenService import TokenIssuer

from app.api.v1.endpoints.auth import router as auth_router
from app.api.v1.endpoints.profile import router as profile_router
from app.api.v1.endpoints.admin import router as admin_router
from app.api.v1.endpoints.creator import router as creator_router
from app.api.v1.endpoints.categories import router as categories_router
from app.api.v1.endpoints.categories import admin_router as admin_categories_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_token_issuer() -> TokenIssuer:
    return TokenIssuer(
        access_secret=settings.JWT_ACCESS_SECRET,
        refresh_secret=settings.JWT_REFRESH_SECRET,
        issuer=settings.JWT_ISSUER,
        audience=settings.JWT_AUDIENCE,
        access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        algorithm=settings.JWT_ALGORITHM,
    )


def build_mailer() -> Mailer:
    client = None
    if settings.RESEND_API_KEY:
        client = ResendEmailClient(settings.RESEND_API_KEY, settings.FROM_EMAIL)
    else:
        logger.warning("⚠️ RESEND_API_KEY is not set, emails will only be logged")
    return Mailer(client, settings.OTP_EXPIRE_MINUTES, settings.FRONTEND_URL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Async context manager for app lifespan events"""

    try:
        logger.info("🚀 Starting GrowthTubes API...")

        logger.info("🔌 Initializing database connection pool...")
        await session_manager.init()
        logger.info("✅ Database ready, tables created")

        app.state.tokens = build_token_issuer()
        app.state.mailer = build_mailer()
        logger.info("✅ Token issuer and mailer ready")

    except Exception as e:
        logger.critical(f"🔥 Application startup failed: {str(e)}")
        raise

    try:
        logger.info("🏁 GrowthTubes API startup complete")
        yield
    finally:
        try:
            logger.info("🔌 Closing database connections...")
            await session_manager.close()
            logger.info("✅ Database connections closed cleanly")
        except Exception as e:
            logger.error(f"⚠️ Error during shutdown: {str(e)}")
            raise
        finally:
            logger.info("👋 Application shutdown complete")


app = FastAPI(
    title="GrowthTubes API",
    description="Accounts, email verification and sessions for the GrowthTubes course marketplace",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"Request: {request.method} {request.url.path}")
    response = await call_next(request)
    logger.info(f"Response status: {response.status_code}")
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Health Check"])
async def health_check(db: AsyncSession = Depends(aget_db)):
    try:
        await db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "service": "GrowthTubes API",
            "database": "connected",
        }
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return {
            "status": "unhealthy",
            "service": "GrowthTubes API",
            "database": "disconnected",
        }


app.include_router(auth_router, prefix="/api/v1", tags=["Authentication"])
app.include_router(profile_router, prefix="/api/v1", tags=["Profile"])
app.include_router(admin_router, prefix="/api/v1", tags=["Admin"])
app.include_router(admin_categories_router, prefix="/api/v1", tags=["Admin"])
app.include_router(creator_router, prefix="/api/v1", tags=["Creator"])
app.include_router(categories_router, prefix="/api/v1", tags=["Categories"])

logger.info(f"✅ Loaded {len(app.routes)} routes")
