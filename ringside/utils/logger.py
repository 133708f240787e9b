import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from ringside.config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def log_file_path(day: Optional[datetime] = None) -> Path:
    """Daily simulation log under Config.LOG_DIR"""
    day = day or datetime.now()
    return Path(Config.LOG_DIR) / f'ringside_{day.strftime("%Y%m%d")}.log'


def setup_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """Setup a logger with console and daily file output; repeat calls reuse it"""

    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    # DEBUG config widens the console; the file always gets everything
    console_level = level if level is not None else (logging.DEBUG if Config.DEBUG else logging.INFO)
    logger.setLevel(min(console_level, logging.DEBUG))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    path = log_file_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(path, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger
