import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# Load environment variables from .env file
load_dotenv()

# Paths
PACKAGE_DIR = Path(__file__).resolve().parent
PROJ_ROOT = PACKAGE_DIR.parents[1]
INTENTS_PATH = Path(
    os.getenv("BABYNEST_INTENTS_PATH", PACKAGE_DIR / "chatbot_nlu" / "intents.yaml")
)
DB_PATH = os.getenv("BABYNEST_DB_PATH", str(PROJ_ROOT / "data" / "babynest.db"))


def log_project_root() -> None:
    """Log the resolved project root path."""
    logger.info(f"PROJ_ROOT path is: {PROJ_ROOT}")


# Conversation engine
UNDO_CAPACITY = int(os.getenv("UNDO_CAPACITY", 50))
HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", 50))
CONFIDENCE_FLOOR = float(os.getenv("CONFIDENCE_FLOOR", 0.1))
DEFAULT_WEEK = int(os.getenv("DEFAULT_WEEK", 12))
DEFAULT_TIME = os.getenv("DEFAULT_TIME", "09:00")

# Free-form chat endpoint used for the general conversation fallback
CHAT_API_URL = os.getenv(
    "CHAT_API_URL", "https://api.openai.com/v1/chat/completions"
)
CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o-mini")
CHAT_TIMEOUT = float(os.getenv("CHAT_TIMEOUT", 30))
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Configure logging
try:
    logger.remove()
except ValueError:
    pass
logger.add(sys.stdout, level=LOG_LEVEL)


if __name__ == "__main__":
    log_project_root()
