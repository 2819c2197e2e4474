"""
NPIP - Nepal Public Information Pipeline
Main FastAPI Application
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from npip.config import get_settings


def _is_serverless() -> bool:
    """Check if running in serverless environment"""
    return bool(os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    # Skip heavy initialization in serverless
    if not _is_serverless():
        from npip.utils.cache import close_redis
        from npip.utils.database import init_db, close_db
        await init_db()
        yield
        await close_db()
        await close_redis()
    else:
        yield


def create_app() -> FastAPI:
    """Factory function to create FastAPI app"""
    settings = get_settings()

    application = FastAPI(
        title="NPIP API",
        description="""
        Mention ingestion for Nepal-focused media monitoring

        ## Features
        - Scheduled ingestion from local news RSS, Reddit, YouTube, X and Meta
        - Boolean keyword filtering
        - Language and sentiment enrichment
        - Connector health, monthly usage quotas and mention alerts
        """,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc" if settings.is_development else None,
    )

    # CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handler
    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors"""
        settings = get_settings()
        if settings.DEBUG:
            return JSONResponse(
                status_code=500,
                content={
                    "detail": str(exc),
                    "type": type(exc).__name__,
                },
            )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    from npip.api.routes import api_router
    application.include_router(api_router, prefix="/api/v1")

    # Health check
    @application.get("/health")
    async def health_check():
        """Health check endpoint"""
        settings = get_settings()
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.APP_ENV,
        }

    return application


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()

    uvicorn.run(
        "npip.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development,
        workers=1 if settings.is_development else settings.WORKERS,
    )
