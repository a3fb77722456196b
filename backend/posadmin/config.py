# backend/posadmin/config.py
from __future__ import annotations
import os
from decimal import Decimal


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/posadmin.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///posadmin.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sales tax applied at checkout (0.08 = 8%)
    TAX_RATE = Decimal(os.environ.get("POS_TAX_RATE", "0.08"))

    # The sign-up screen lets a new principal pick their own role
    ALLOW_SELF_REGISTRATION = _env_flag("POS_ALLOW_SELF_REGISTRATION", "true")

    CORS_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "POS_CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    }
