# localscope/core/logging.py
# -----------------------------------------------------------------------------
# Loguru setup
# - rotating file sink + stderr, level from settings
# - imported once by localscope.main for its side effect
# -----------------------------------------------------------------------------
import sys
from pathlib import Path

from loguru import logger

from localscope.core.config import settings

LOG_DIR = Path(settings.LOG_DIR)
LOG_DIR.mkdir(exist_ok=True, parents=True)
LOG_FILE = LOG_DIR / "app.log"

FILE_SINK_OPTIONS = dict(
    rotation="10 MB",
    retention=10,  # keep the 10 newest rotated files
    enqueue=True,  # multiprocess safe
    backtrace=True,
    diagnose=False,
    level=settings.LOG_LEVEL,
)

logger.remove()  # drop the default handler
logger.add(sys.stderr, level=settings.LOG_LEVEL)
logger.add(LOG_FILE, **FILE_SINK_OPTIONS)
