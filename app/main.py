from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from app.database.database import engine, Base

# Import middleware
from app.common.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

# Import routers
from app.modules.auth.router import auth_router
from app.modules.taxes.router import taxes_router
from app.modules.movements.router import router as movements_router
from app.modules.invoices.router import router as invoices_router
from app.modules.reports.routers import financial_router as financial_reports_router
from app.modules.dashboard.router import dashboard_router, viewer_router

# Import models for table creation
import app.modules.movements.models
import app.modules.invoices.models
import app.modules.share_links.models

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="HST Contabilidad API",
    description="Libro de ingresos y gastos, facturas con pagos parciales y estados de cuenta en PDF",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Add your frontend URLs
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/auth", tags=["Auth"])
app.include_router(taxes_router)
app.include_router(movements_router)
app.include_router(invoices_router)
app.include_router(financial_reports_router)
app.include_router(dashboard_router)
app.include_router(viewer_router)

# Create database tables (only for development and tests, no migrations)
if settings.ENVIRONMENT in ("development", "test"):
    Base.metadata.create_all(bind=engine)


@app.get("/")
async def read_root():
    return {
        "message": "HST Contabilidad API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
async def startup_event():
    logger.info("HST Contabilidad API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("HST Contabilidad API shutting down...")
