"""
Structured rotating log setup.
"""
import logging
import logging.handlers
import sys
from pathlib import Path

from actionbet.config import LOG_LEVEL, LOG_DIR


def setup_logging(log_dir: Path = LOG_DIR, level: str = LOG_LEVEL) -> logging.Logger:
    log_dir.mkdir(parents=True, exist_ok=True)

    fmt = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(levelname)-7s | %(name)-22s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # ── Rotating file handler (10 MB x 5 backups) ────────────────────
    fh = logging.handlers.RotatingFileHandler(
        log_dir / "actionbet.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    fh.setFormatter(fmt)

    # ── Console handler ──────────────────────────────────────────────
    ch = logging.StreamHandler(sys.stdout)
    ch.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.addHandler(fh)
    root.addHandler(ch)

    # Silence noisy libs
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return root
