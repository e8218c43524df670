# backend/stockledger/config.py
from __future__ import annotations
import os
from decimal import Decimal


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Generated item codes: 3-digit internal-use prefix + 9 random digits + check digit
    ITEM_CODE_PREFIX = os.environ.get("ITEM_CODE_PREFIX", "799")
    INTERNAL_CODE_PREFIX = os.environ.get("INTERNAL_CODE_PREFIX", "PRD")
    DEFAULT_REORDER_THRESHOLD = int(os.environ.get("DEFAULT_REORDER_THRESHOLD", "5"))

    # Replenishment: proposed unit cost as a fraction of the sale price
    SUGGESTED_COST_RATIO = Decimal(os.environ.get("SUGGESTED_COST_RATIO", "0.70"))

    # Storage-level retry on lock / version conflicts
    WRITE_RETRY_ATTEMPTS = int(os.environ.get("WRITE_RETRY_ATTEMPTS", "3"))
    WRITE_RETRY_BACKOFF = float(os.environ.get("WRITE_RETRY_BACKOFF", "0.1"))
