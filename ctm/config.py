"""
Configuration - environment-driven settings.

All values are read once at import time. Override them through the
environment before importing the package, e.g.::

    CTM_MULTI_SIG_AUTH_TTL_MINUTES=120 ctm draft ...
"""

import os

CTM_LOG_LEVEL = os.getenv("CTM_LOG_LEVEL", "INFO")

# Ledger
NETWORK_PASSPHRASE = os.getenv("CTM_NETWORK_PASSPHRASE", "Commit Turn Move Local Network")
LEDGER_CLOSE_SECONDS = int(os.getenv("CTM_LEDGER_CLOSE_SECONDS", "5"))

# Session records live ~30 days of 5 second ledgers after their last write
GAME_TTL_LEDGERS = int(os.getenv("CTM_GAME_TTL_LEDGERS", "518400"))

# Authorization lifetimes
DEFAULT_AUTH_TTL_MINUTES = int(os.getenv("CTM_DEFAULT_AUTH_TTL_MINUTES", "5"))
MULTI_SIG_AUTH_TTL_MINUTES = int(os.getenv("CTM_MULTI_SIG_AUTH_TTL_MINUTES", "60"))

# Caller-side polling
POLL_INTERVAL_SECONDS = float(os.getenv("CTM_POLL_INTERVAL_SECONDS", "3.0"))
POLL_TIMEOUT_SECONDS = float(os.getenv("CTM_POLL_TIMEOUT_SECONDS", "300"))

# Share links for exported authorization artifacts
SHARE_BASE_URL = os.getenv("CTM_SHARE_BASE_URL", "http://localhost:3000/ctm")

# API
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

# Points are displayed with 7 decimal places (1 point = 10_000_000 units)
POINT_DECIMALS = 7
