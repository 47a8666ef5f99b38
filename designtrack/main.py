from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import logging

# Import database and models
from .database import engine
from .models import Base

# Import API routers
from .api import (
    auth as api_auth, users as api_users, tracker as api_tracker, projects as api_projects,
    issues as api_issues, innovations as api_innovations, dashboard as api_dashboard
)
from . import sse

from .dependencies import ContextRegistry
from .exceptions import TrackerError, ValidationError, LedgerStateError, NotFoundError, PersistenceError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

# Initialize FastAPI app
app = FastAPI(title="DesignTrack", version="1.0.0")

# One tracker context per logged-in user
app.state.contexts = ContextRegistry()

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(api_auth.router)
app.include_router(api_users.router)
app.include_router(api_tracker.router)
app.include_router(api_projects.router)
app.include_router(api_issues.router)
app.include_router(api_innovations.router)
app.include_router(api_dashboard.router)
app.include_router(sse.router)

STATUS_CODES = [
    (ValidationError, 422),
    (LedgerStateError, 409),
    (NotFoundError, 404),
    (PersistenceError, 503),
]

# Error handlers
@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError):
    status_code = 500
    for exc_type, code in STATUS_CODES:
        if isinstance(exc, exc_type):
            status_code = code
            break

    if isinstance(exc, LedgerStateError):
        logger.warning(f"Rejected {request.method} {request.url.path}: {exc.message}")
    elif status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")

    return JSONResponse(exc.to_dict(), status_code=status_code)

@app.get("/api/health")
async def health():
    return {"status": "ok"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
