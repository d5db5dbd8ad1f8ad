"""
config.py — Runtime Configuration for the Quote Service

All settings are read once from environment variables at import time and
exposed as module-level constants. Defaults describe the local demo setup.
"""

import os

# Currency all internal calculations are normalised to
BASE_CURRENCY = os.environ.get("QUOTE_SERVICE_BASE_CURRENCY", "EUR")

# Placeholder transaction amount used when a request carries no order items
DEFAULT_TRANSACTION_AMOUNT = float(os.environ.get("QUOTE_SERVICE_DEFAULT_TRANSACTION_AMOUNT", "100.0"))

# Quotes expire this many hours after creation
QUOTE_TTL_HOURS = int(os.environ.get("QUOTE_SERVICE_QUOTE_TTL_HOURS", "24"))

LOG_LEVEL = os.environ.get("QUOTE_SERVICE_LOG_LEVEL", "INFO")
LOG_FILE = os.environ.get("QUOTE_SERVICE_LOG_FILE", "quote_service.log")

# Remote impact partner catalogue; when unset the in-memory catalogue is used
IMPACT_PARTNER_SERVICE_URL = os.environ.get("IMPACT_PARTNER_SERVICE_URL", "")

HOST = os.environ.get("QUOTE_SERVICE_HOST", "0.0.0.0")
PORT = int(os.environ.get("QUOTE_SERVICE_PORT", "8080"))
