"""FastAPI application entry point"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from tka_invoice.logging_config import setup_logging
setup_logging()

load_dotenv()

from tka_invoice.config import settings  # noqa: E402

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Invoice calculation and numbering for TKA labor services",
    version=settings.APP_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def _init_database() -> None:
    """Ensure database tables exist (alembic manages production schemas)."""
    from tka_invoice.models.database import Base, engine
    from tka_invoice.models import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@app.on_event("shutdown")
async def _close_database() -> None:
    from tka_invoice.models.database import dispose_engine

    await dispose_engine()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": f"{settings.APP_NAME} API",
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy"}


from api.routes import calculations, invoices  # noqa: E402
app.include_router(calculations.router, prefix="/api")
app.include_router(invoices.router, prefix="/api")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
