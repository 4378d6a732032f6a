# farmfence/config.py
import os
from pathlib import Path

# Resolve to the project root (one level up from farmfence/)
BASE_DIR = Path(__file__).resolve().parent.parent


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv(
    "FARMFENCE_DATABASE_URL",
    f"sqlite:///{(BASE_DIR / 'farmfence.db').as_posix()}",
)

# whole-operation retries for a unit of work
TX_ATTEMPTS = int(os.getenv("FARMFENCE_TX_ATTEMPTS", "3"))

# "01".."99"
NAME_SUFFIX_LIMIT = int(os.getenv("FARMFENCE_NAME_SUFFIX_LIMIT", "100"))

LOG_LEVEL = os.getenv("FARMFENCE_LOG_LEVEL", "INFO").upper()

REPAIR_ON_READ = _flag("FARMFENCE_REPAIR_ON_READ", True)
