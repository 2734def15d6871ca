from pathlib import Path
from dotenv import load_dotenv
from cachetools import TTLCache

from app.config import settings
from app.models.stage import StageDefinition

# Load environment variables
load_dotenv()

# Cache Configuration
# Extracted summary context keyed by input digest; identical documents skip a model call.
CONTEXT_CACHE = TTLCache(maxsize=settings.CONTEXT_CACHE_SIZE, ttl=settings.CONTEXT_CACHE_TTL)

# Directory Configuration
BASE_DIR = Path(__file__).parent.parent.parent
LOGS_DIR = BASE_DIR / "logs"

# Ensure directories exist
LOGS_DIR.mkdir(exist_ok=True)

# Pipeline stages, in execution order. Later stages see earlier stages' output.
DEFAULT_STAGES = (
    StageDefinition(
        id="target-user-analysis",
        display_label="Analyzing target users",
        estimated_duration_seconds=20,
    ),
    StageDefinition(
        id="launch-timeline",
        display_label="Creating launch timeline",
        estimated_duration_seconds=20,
    ),
    StageDefinition(
        id="platform-strategy",
        display_label="Developing platform strategy",
        estimated_duration_seconds=15,
    ),
    StageDefinition(
        id="content-templates",
        display_label="Generating content templates",
        estimated_duration_seconds=20,
    ),
    StageDefinition(
        id="metrics-dashboard",
        display_label="Setting up metrics dashboard",
        estimated_duration_seconds=10,
    ),
)
