"""
Configuration module for the Prendas try-on core
Contains logger setup and environment variables
"""

import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


# -------------------------
# Logger Setup
# -------------------------
def setup_logger(name: str = __name__, log_file: str | None = None) -> logging.Logger:
    """
    Set up and return a logger with console and optional file handlers

    Args:
        name: Logger name (usually __name__)
        log_file: Path to log file, no file handler when empty

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    # Avoid adding duplicate handlers
    if logger.handlers:
        return logger

    # Create formatter
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # File handler
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


# Create the main application logger
logger = setup_logger("prendas", os.getenv("LOG_FILE"))

# -------------------------
# Environment Variables
# -------------------------
GEMINI_KEY = os.getenv("GEMINI_KEY")
GEMINI_IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")
GEMINI_METADATA_MODEL = os.getenv("GEMINI_METADATA_MODEL", "gemini-2.0-flash-lite")
GEMINI_EMBEDDING_MODEL = os.getenv("GEMINI_EMBEDDING_MODEL", "gemini-embedding-001")
EMBEDDING_DIMENSIONS = int(os.getenv("EMBEDDING_DIMENSIONS", "768"))

# supabase
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")
STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "images")

# queue / workers
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
TRYON_WORKER_CONCURRENCY = int(os.getenv("TRYON_WORKER_CONCURRENCY", "5"))
MAX_WAITING_JOBS = int(os.getenv("MAX_WAITING_JOBS", "15"))
JOB_MAX_RETRIES = int(os.getenv("JOB_MAX_RETRIES", "3"))
SYNC_CRON = os.getenv("SYNC_CRON", "*/5 * * * *")

# anchor (mannequin) images, one per stance
ANCHOR_ASSETS_DIR = os.getenv("ANCHOR_ASSETS_DIR", "assets")


# Log configuration status
logger.info("Configuration loaded successfully")
logger.debug(f"GEMINI_KEY configured: {bool(GEMINI_KEY)}")
logger.debug(f"SUPABASE_URL configured: {bool(SUPABASE_URL)}")
logger.debug(f"SUPABASE_SERVICE_KEY configured: {bool(SUPABASE_SERVICE_KEY)}")
logger.debug(f"REDIS_URL: {REDIS_URL}")
logger.debug(f"TRYON_WORKER_CONCURRENCY: {TRYON_WORKER_CONCURRENCY}")
logger.debug(f"MAX_WAITING_JOBS: {MAX_WAITING_JOBS}")
