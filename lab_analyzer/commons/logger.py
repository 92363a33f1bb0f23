import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{line} - {message}"


def setup_logging(root: Optional[str], level: str = "INFO", console: bool = True):
    """Daily log folder <root>/YYYY/MM/DD/analyzer.log plus a stderr sink.

    With root=None only the console sink is installed (CLI one-shot runs).
    """
    logger.remove()
    if root:
        logdir = Path(root) / datetime.now().strftime("%Y/%m/%d")
        logdir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(logdir / "analyzer.log"),
            rotation="00:00",
            retention="14 days",
            level=level,
            enqueue=True,
            backtrace=True,
            diagnose=False,  # OCR text may carry patient data
        )
    if console:
        logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT)
    return logger
