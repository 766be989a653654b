import logging
from datetime import datetime
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from app.core.lifespan import lifespan
from app.api.v1.api import api_router
from app.core.config import settings
from app.core.exceptions import (
    QuotaExceededError,
    StorageUnavailableError,
    UserNotFoundError,
    quota_exceeded_handler,
    storage_unavailable_handler,
    user_not_found_handler,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API for AI-assisted content ideation, scripting and planning",
    version=settings.VERSION,
    lifespan=lifespan
)

# CORS middleware configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],  # In production, replace with specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(QuotaExceededError, quota_exceeded_handler)
app.add_exception_handler(StorageUnavailableError, storage_unavailable_handler)
app.add_exception_handler(UserNotFoundError, user_not_found_handler)


@app.get("/")
async def root():
    """Root endpoint to check if the API is running."""
    return {
        "message": "Welcome to CreatorGenius API",
        "status": "running",
        "timestamp": datetime.utcnow().isoformat()
    }

app.include_router(api_router, prefix=settings.API_V1_STR)

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
