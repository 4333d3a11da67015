"""
Escrow Lending API Application Factory
"""

from fastapi import FastAPI

from .loans import router as loans_router
from .admin import router as admin_router
from .. import __version__


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Escrow Lending API",
        description="Pooled loan disbursement with impact-verified escrow release",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.include_router(loans_router, prefix="/loans", tags=["Loans"])
    app.include_router(admin_router, prefix="/admin", tags=["Admin"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "escrow_lending_api",
            "version": __version__
        }

    return app


app = create_app()


def run_server(host: str = "0.0.0.0", port: int = 8091, log_level: str = "info"):
    """Run the API server with uvicorn"""
    import uvicorn
    uvicorn.run(app, host=host, port=port, log_level=log_level)
