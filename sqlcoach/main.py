"""
FastAPI application exposing the SQL exercise validator
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import Config
from .routes import exercise_router

logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

Config.validate_config()

# Create FastAPI app
app = FastAPI(title="SQLCoach API",
              description="Static validation and feedback for SQL exercises",
              version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Include routers
app.include_router(exercise_router)


# Health check endpoint
@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "SQLCoach API", "version": __version__}


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting SQLCoach API with settings: {Config.summary()}")
    uvicorn.run(app, host=Config.HOST, port=Config.PORT)
