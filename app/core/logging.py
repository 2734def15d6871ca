import logging
from pathlib import Path
from app.config import settings
from app.core.config import LOGS_DIR
from pythonjsonlogger.json import JsonFormatter

def setup_job_logger(job_id: str) -> logging.Logger:
    """Setup a logger for a specific job."""
    logger = logging.getLogger(f"job_{job_id}")
    if not logger.handlers:  # Only add handler if none exists
        logger.setLevel(logging.INFO)
        # Job records go to the job file; keep them out of the root handlers
        logger.propagate = False

        # create a json formatter for structured logging
        formatter = JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s')

        # Add file handler
        fh = logging.FileHandler(LOGS_DIR / f"{job_id}.log")
        fh.setLevel(logging.INFO)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

        # Add console handler
        ch = logging.StreamHandler()
        ch.setLevel(logging.INFO)
        ch.setFormatter(formatter)
        logger.addHandler(ch)

    return logger

def release_job_logger(job_id: str) -> None:
    """Close the per-job handlers once a job has reached a terminal state."""
    logger = logging.getLogger(f"job_{job_id}")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    # Drop the logger itself so finished jobs do not accumulate in the registry
    logging.Logger.manager.loggerDict.pop(logger.name, None)

def configure_logging() -> None:
    """Configure the root logger for the service process."""
    log_file = Path(settings.LOG_FILE_PATH)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[
            logging.StreamHandler(),  # Log to console
            logging.FileHandler(log_file)  # Log to file
        ]
    )
