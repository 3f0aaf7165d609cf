# backend/schoolhub/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/schoolhub.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///schoolhub.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Header carrying the acting user's id (identity is verified upstream)
    ACTOR_HEADER = os.environ.get("ACTOR_HEADER", "X-Actor-Id")

    # Browser origins allowed to call the API, comma separated; empty sends no CORS headers
    CORS_ORIGINS = tuple(
        o.strip() for o in os.environ.get("CORS_ORIGINS", "").split(",") if o.strip()
    )

    # Upper bound for ancestor walks in category trees
    CATEGORY_MAX_DEPTH = int(os.environ.get("CATEGORY_MAX_DEPTH", "64"))

    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
