"""REST API module for the marketplace.

This module provides HTTP endpoints for:
- Signup, login and session management
- Browsing, creating and reporting products
- Razorpay checkout and payment verification
- The admin dashboard and moderation queue
- The contact form and the chat assistant
- System health monitoring
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings_conf
from database import init_db, close as db_close
import ratelimit
from ratelimit import RateLimitExceeded, RateLimiterUnavailable

logger = logging.getLogger(__name__)

# Lifecycle management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Initializing API...")
    await init_db()

    yield

    logger.info("Shutting down API...")
    await ratelimit.close()
    await db_close()

# Create FastAPI app
app = FastAPI(
    title="AnarchyBay API",
    description="REST API for the AnarchyBay digital goods marketplace",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings_conf['frontend_url']],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"],
)

@app.exception_handler(RateLimitExceeded)
async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": str(exc), "retry_after": exc.retry_after},
        headers={
            "Retry-After": str(exc.retry_after),
            "X-RateLimit-Limit": str(exc.limit),
            "X-RateLimit-Remaining": "0",
        }
    )

@app.exception_handler(RateLimiterUnavailable)
async def rate_limiter_unavailable_handler(request: Request, exc: RateLimiterUnavailable):
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)}
    )

@app.get("/health-check")
async def health_check():
    """Liveness probe."""
    return {"status": "ok"}

# Import and include all routers
from .auth import router as auth_router
from .products import router as products_router
from .purchases import router as purchases_router
from .admin import router as admin_router
from .contact import router as contact_router
from .chat import router as chat_router
from .system import router as system_router

# Include all routers
app.include_router(auth_router)
app.include_router(products_router)
app.include_router(purchases_router)
app.include_router(admin_router)
app.include_router(contact_router)
app.include_router(chat_router)
app.include_router(system_router)
