from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from database import engine
from init_db import init_database
from api import users
from config.settings import get_log_dir, get_log_level
from constants import LoggingDefaults, ServerConfig
import logging
from logging.handlers import RotatingFileHandler
import sys


def configure_logging():
    """Rotating file log plus console output on the root logger."""
    log_dir = get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LoggingDefaults.FILE_NAME
    level = get_log_level()

    log_formatter = logging.Formatter(LoggingDefaults.FORMAT)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=LoggingDefaults.MAX_BYTES,
        backupCount=LoggingDefaults.BACKUP_COUNT,
        encoding='utf-8'
    )
    file_handler.setFormatter(log_formatter)
    file_handler.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_formatter)
    console_handler.setLevel(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)
    return log_file


log_file = configure_logging()
logger = logging.getLogger(__name__)
logger.info(f"Logging initialized: {log_file}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the schema on startup, release pooled connections on shutdown"""
    init_database()
    yield
    engine.dispose()
    logger.info("Database connections closed")


app = FastAPI(
    title="CRUD Fixtures API",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users.router, prefix="/api", tags=["users"])


@app.get("/api/health")
def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "service": "CRUD Fixtures API",
        "version": "1.0.0"
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"🚀 Starting CRUD Fixtures API on {ServerConfig.url()}...")
    uvicorn.run(app, host=ServerConfig.HOST, port=ServerConfig.PORT)
