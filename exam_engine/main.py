"""
Main FastAPI application
Test attempt, grading and statistics service for the learning platform
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import time

from exam_engine.config import settings
from exam_engine.database import check_database, init_db
from exam_engine.exceptions import ExamEngineError
from exam_engine.api import analytics, courses, tests
from exam_engine.utils.cache import cache_service
from exam_engine.utils.rate_limiter import rate_limiter

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Test attempts, grading and statistics for online courses",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Rate limiting middleware
@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    """Apply rate limiting to all requests"""
    try:
        await rate_limiter.check_rate_limit(request)
    except ExamEngineError as e:
        return JSONResponse(status_code=e.status_code, content=e.to_dict())

    return await call_next(request)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing"""

    start_time = time.time()

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {duration:.3f}s"
    )

    return response


# Domain error handler
@app.exception_handler(ExamEngineError)
async def exam_engine_exception_handler(request: Request, exc: ExamEngineError):
    """Render expected failures with their status and error code"""

    logger.info(f"{request.method} {request.url.path} rejected: {exc.error} - {exc.message}")

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors gracefully"""

    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "detail": str(exc) if settings.DEBUG else None
        }
    )


# HTTP exception handler
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Format HTTP exceptions consistently"""

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "http_error",
            "message": exc.detail,
            "status_code": exc.status_code
        }
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring

    Reports database reachability and whether the analytics cache is connected.
    Returns 503 while the database is down so load balancers drain the node.
    """
    database_ok = check_database()
    payload = {
        "status": "healthy" if database_ok else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "database": "ok" if database_ok else "unavailable",
        "cache": "connected" if cache_service.redis_client else "disabled",
        "timestamp": time.time()
    }
    return JSONResponse(status_code=200 if database_ok else 503, content=payload)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Exam Engine API",
        "version": settings.APP_VERSION,
        "endpoints": {
            "courses": "/api/courses",
            "tests": "/api/tests",
            "start_attempt": "/api/tests/{test_id}/start",
            "submit_attempt": "/api/tests/{test_id}/submit",
            "results": "/api/tests/{test_id}/results",
            "analytics": "/api/tests/{test_id}/analytics"
        },
        "docs": "/docs",
        "health": "/health"
    }


# Include routers
app.include_router(courses.router)
app.include_router(tests.router)
app.include_router(analytics.router)


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize database on startup"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    logger.info("Application startup complete")


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down application")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "exam_engine.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
