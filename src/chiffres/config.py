"""
Shared configuration defaults.

Every module imports its tunables from here. Environment variables
override the defaults.
"""
from __future__ import annotations

import os
from typing import Optional


def _env_timeout() -> Optional[float]:
    raw = os.getenv("CHIFFRES_TIMEOUT_S", "")
    if not raw:
        return None
    value = float(raw)
    return value if value > 0 else None


# ── Encoding ──────────────────────────────────────────────────────────
BV_BITS: int = int(os.getenv("CHIFFRES_BV_BITS", "16"))
NO_OVERFLOWS: bool = os.getenv("CHIFFRES_ALLOW_OVERFLOWS", "0") != "1"

# ── Solver ────────────────────────────────────────────────────────────
# Wall-clock budget in seconds, None means unlimited.
TIMEOUT_S: Optional[float] = _env_timeout()

# ── Logging ───────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("CHIFFRES_LOG_LEVEL", "WARNING")
LOG_FORMAT: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
