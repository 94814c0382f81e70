"""
HTTP API for Pantry.

Run:
    uvicorn api:app --reload
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

from Pantry import __version__
from Pantry.ai_client import KitchenAssistant
from Pantry.database import init_db
from Pantry.errors import PantryError
from Pantry.routers import api_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Pantry API",
    description="Kitchen inventory, recipes and cooking",
    version=__version__,
)

# One generation client per process, handed to routes through get_assistant
app.state.assistant = KitchenAssistant()

cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(PantryError)
async def pantry_error_handler(request: Request, exc: PantryError):
    if exc.status_code >= 500:
        logger.error("%s %s failed (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
    return JSONResponse(
        status_code=422,
        content={
            "status": False,
            "message": "Invalid request: " + ", ".join(fields),
            "error": "validation_error",
            "data": {"fields": fields},
        },
    )


# ============================================================================
# Startup Events
# ============================================================================

@app.on_event("startup")
def startup_event():
    """Create tables that do not exist yet."""
    init_db()
    logger.info("Database initialized")


# ============================================================================
# Health Check
# ============================================================================

@app.get("/")
def read_root():
    """Health check endpoint."""
    return {
        "message": "Pantry API",
        "version": __version__,
        "status": "online",
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected",
        "api": "running"
    }


# ============================================================================
# Main
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
    )
