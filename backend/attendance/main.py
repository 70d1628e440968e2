"""
Weekly Attendance Dashboard - FastAPI application entry point.

This module:
1. Initializes the FastAPI app with CORS middleware
2. Sets up structured JSON logging
3. Implements request ID middleware (X-Request-ID header)
4. Renders domain errors as JSON responses
5. Registers the student routes and the health endpoint

Layout:
- routes/: API endpoint handlers
- models/: SQLAlchemy ORM models
- services/: week records, projection and the record store
- logging_config.py: Structured logging configuration
- database.py: Database connection management

Run with ``uvicorn attendance.main:app`` from backend/, or directly with
``python -m attendance.main`` (PORT defaults to 8000).
"""

import os
import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from attendance.config import DATABASE_URL
from attendance.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from attendance.errors import DashboardError
from attendance.routes import students
from attendance.database import create_tables

# Import models so they are registered with Base.metadata
from attendance.models.student import Student  # noqa: F401

# ──────────────────────────────────────────────────────────────
# Initialize structured logging BEFORE anything else
# ──────────────────────────────────────────────────────────────
setup_logging()
logger = get_logger("http")

# Auto-create tables for SQLite local development
if DATABASE_URL.startswith("sqlite"):
    logger.info("Using SQLite, creating tables directly")
    create_tables()

# ──────────────────────────────────────────────────────────────
# Create FastAPI application
# ──────────────────────────────────────────────────────────────
app = FastAPI(
    title="Weekly Attendance Dashboard",
    description=(
        "Backend for a tutoring center dashboard: student registration, "
        "per-week attendance, homework and quiz tracking, and WhatsApp "
        "notification state."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# ──────────────────────────────────────────────────────────────
# CORS Middleware
#
# The single-page dashboard is served from a different origin.
# X-Invalidate carries the cache keys a write made stale.
# ──────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Invalidate"]
)


# ──────────────────────────────────────────────────────────────
# Request ID Middleware
#
# Generates a UUID per request, stores it in the logging context
# variable, returns it as X-Request-ID and logs start/end latency.
# ──────────────────────────────────────────────────────────────
@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    req_id = generate_request_id()
    request_id_var.set(req_id)
    start_time = time.time()

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "user_agent": request.headers.get("user-agent", ""),
            "query_params": dict(request.query_params)
        })

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    response.headers["X-Request-ID"] = req_id

    log_with_context(logger, "INFO",
        f"Request completed: {request.method} {request.url.path} → {response.status_code}",
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "status_code": response.status_code
        })

    return response


# ──────────────────────────────────────────────────────────────
# Domain errors
# ──────────────────────────────────────────────────────────────
@app.exception_handler(DashboardError)
async def dashboard_error_handler(request: Request, exc: DashboardError):
    """
    Render a DashboardError with its status code and message. The message
    goes under both ``detail`` (FastAPI convention) and ``error`` (what the
    dashboard reads).
    """
    level = "ERROR" if exc.status_code >= 500 else "WARNING"
    log_with_context(logger, level,
        f"{type(exc).__name__}: {exc.message}",
        extra_data={"path": request.url.path, "status_code": exc.status_code})
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    content = {"detail": exc.message, "error": exc.message}
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


# ──────────────────────────────────────────────────────────────
# Register API routes
# ──────────────────────────────────────────────────────────────
app.include_router(students.router, tags=["Students"])


@app.get("/health", tags=["Health"])
def health_check():
    """Liveness check for container orchestration."""
    return {"status": "healthy", "service": "attendance-backend", "version": "1.0.0"}


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "Weekly Attendance Dashboard",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "students_list": "GET /api/students",
            "history": "GET /api/students/history",
            "student_detail": "GET /api/students/{id}",
            "create": "POST /api/students",
            "update": "PUT /api/students/{id}",
            "delete": "DELETE /api/students/{id}",
            "attend": "POST /api/students/{id}/attend",
            "homework": "POST /api/students/{id}/hw",
            "quiz": "POST /api/students/{id}/quiz_degree",
            "message_state": "POST /api/students/{id}/message_state"
        }
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
