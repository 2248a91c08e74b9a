"""Main FastAPI application."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from pennywise.config import settings
from pennywise.constants import GoogleCallbackMode
from pennywise.exceptions import PennyWiseError
from pennywise.rate_limiter import limiter

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="PennyWise Identity API",
    description="Authentication, two-factor and user management for PennyWise",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Add rate limiter to app state and exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(PennyWiseError)
async def pennywise_error_handler(request: Request, exc: PennyWiseError) -> JSONResponse:
    """Turn domain exceptions into ``{"detail": ...}`` responses."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.google_callback_mode == GoogleCallbackMode.REDIRECT:
    logger.warning(
        "GOOGLE_CALLBACK_MODE=redirect puts bearer tokens in browser URLs; "
        "use the JSON callback unless a legacy frontend requires it"
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "PennyWise Identity API", "version": "0.1.0", "status": "running"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


# Import and include routers
from pennywise.routers import auth, google, users  # noqa: E402

app.include_router(auth.router, prefix="/api")
app.include_router(google.router, prefix="/api")
app.include_router(users.router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, reload=True)
