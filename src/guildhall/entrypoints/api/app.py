"""FastAPI application definition."""

from __future__ import annotations

from fastapi import FastAPI, Request

from .deps import lifespan
from .routes import api_router

app = FastAPI(
    title="guildhall",
    description="Community and course access control",
    version="1.0.0",
    lifespan=lifespan,
    redirect_slashes=False,  # Prevent 307 redirects that lose auth headers
)

# Include API routes
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """Health check endpoint, including a database round-trip."""
    async with request.app.state.app_db.acquire() as conn:
        await conn.fetchval("SELECT 1")
    return {"status": "healthy"}
