"""
Action-bet system configuration — loaded from .env.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# ── Betting opportunity ──────────────────────────────────────────────
OPPORTUNITY_DURATION_MS = float(os.getenv("OPPORTUNITY_DURATION_MS", "10000"))
RESUME_COUNTDOWN_S      = int(os.getenv("RESUME_COUNTDOWN_S", "3"))
RESCHEDULE_MARGIN_MS    = float(os.getenv("RESCHEDULE_MARGIN_MS", "100"))   # added when re-arming after minimize/restore

# ── Pause controller limits ──────────────────────────────────────────
MAX_PAUSE_TIMEOUT_MS    = 300_000.0   # 5 minutes
MAX_COUNTDOWN_S         = 10
COUNTDOWN_TICK_MS       = 1000.0
TIMEOUT_WARNING_TEXT    = "Timeout - Resuming Game"

# ── Match clock ──────────────────────────────────────────────────────
MATCH_TICK_MS           = float(os.getenv("MATCH_TICK_MS", "500"))   # one match minute per tick
FULL_TIME_MINUTE        = 90

# ── Telegram (optional event feed) ───────────────────────────────────
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")
TELEGRAM_CHAT_ID   = os.getenv("TELEGRAM_CHAT_ID", "")

# ── Storage / health ─────────────────────────────────────────────────
DATA_DIR = Path(os.getenv("ACTIONBET_DATA_DIR", "actionbet_data"))
HEARTBEAT_INTERVAL_S = int(os.getenv("HEARTBEAT_INTERVAL_S", "10"))
HEALTH_FILE = DATA_DIR / "health.json"

# ── Logging ──────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR   = Path(os.getenv("LOG_DIR", "logs"))
