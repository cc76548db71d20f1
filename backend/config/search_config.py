"""
Configuration settings for the StudyShelf material search service.
"""

import os
from pathlib import Path

# Base directories
BASE_DIR = Path(__file__).parent.parent
CONFIG_DIR = BASE_DIR / "config"

# Data directory - use environment variable in production, local path in development
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))

# Ensure data directory exists
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Database path - support environment variable override for production
DATABASE_PATH = os.getenv("DATABASE_PATH", str(DATA_DIR / "materials.db"))


# CANDIDATE RETRIEVAL
#
# The store has no relevance ranking of its own. A bounded pool of
# candidates is pulled (keyword matches first, most recent materials when
# nothing matches) and ranked in Python.

RETRIEVAL_CONFIG = {
    # Results returned to the caller
    "default_limit": 20,

    # Candidates pulled from the store before ranking
    "default_candidate_limit": 100,
}


# LEXICAL / BLENDED RANKING
#
# Weights and thresholds carried over from the mobile client. They have no
# documented derivation, so they are exposed here rather than tuned.

RANKING_CONFIG = {
    # Per-token match weights
    "field_weights": {
        "title": 2.0,
        "description": 1.0,
        "tags": 1.5,
        "category": 0.8,
        "sub_category": 1.0,
    },

    # blended = semantic_weight * semantic + lexical_weight * lexical_norm
    "semantic_weight": 0.85,
    "lexical_weight": 0.15,

    # Semantic mode keeps a candidate if either floor is met
    "min_semantic_score": 0.35,
    "min_lexical_score": 0.2,
}


# SEMANTIC SIMILARITY SERVICE
#
# Hugging Face inference API, sentence-similarity pipeline.
# Leaving HUGGINGFACE_API_KEY unset disables semantic scoring entirely.

SEMANTIC_CONFIG = {
    "api_key": os.getenv("HUGGINGFACE_API_KEY") or None,
    "model": os.getenv("HUGGINGFACE_EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2"),
    "endpoint": os.getenv("SEMANTIC_ENDPOINT", "https://api-inference.huggingface.co/models"),
    "timeout_seconds": float(os.getenv("SEMANTIC_TIMEOUT_SECONDS", "10")),
    "wait_for_model": os.getenv("SEMANTIC_WAIT_FOR_MODEL", "true").lower() == "true",

    # Separator between material fields in the composed candidate text
    "text_separator": " | ",
}


# PLAIN SEARCH FALLBACK
#
# Used when the ranked pipeline fails for any reason. Unscored, newest first.

FALLBACK_CONFIG = {
    "plain_search_limit": 50,
}


# TRENDING SEARCHES

TRENDING_CONFIG = {
    "window_days": 7,
    "sample_size": 1000,
    "default_limit": 10,

    # Pads a short trending list
    "padding_queries": [
        "Machine Learning",
        "Data Structures",
        "React Native",
        "Algorithms",
        "Database Design",
    ],

    # Served as-is when the query log cannot be read
    "default_queries": [
        "Machine Learning",
        "Data Structures",
        "React Native",
        "Algorithms",
        "Database Design",
        "Computer Science",
        "Mathematics",
        "Physics",
        "Chemistry",
    ],
}


# LOGGING CONFIGURATION

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = Path(os.getenv("LOG_DIR", str(BASE_DIR / "logs")))
LOG_DIR.mkdir(parents=True, exist_ok=True)

LOG_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "class": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "format": "%(asctime)s %(name)s %(levelname)s %(message)s"
        },
        "standard": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": LOG_LEVEL,
            "formatter": "standard",
            "stream": "ext://sys.stdout"
        },
        "api": {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(LOG_DIR / "api.log"),
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
            "formatter": "json",
            "level": LOG_LEVEL
        },
        "search": {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(LOG_DIR / "search.log"),
            "maxBytes": 10485760,
            "backupCount": 5,
            "formatter": "json",
            "level": LOG_LEVEL
        },
        "errors": {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(LOG_DIR / "errors.log"),
            "maxBytes": 10485760,
            "backupCount": 5,
            "formatter": "json",
            "level": "ERROR"
        }
    },
    "loggers": {
        "api": {
            "handlers": ["console", "api", "errors"],
            "level": LOG_LEVEL,
            "propagate": False
        },
        "search": {
            "handlers": ["console", "search", "errors"],
            "level": LOG_LEVEL,
            "propagate": False
        },
        "": {  # Root logger
            "handlers": ["console", "errors"],
            "level": LOG_LEVEL
        }
    }
}


# API CONFIGURATION

API_CONFIG = {
    "host": os.getenv("API_HOST", "0.0.0.0"),
    "port": int(os.getenv("API_PORT", "8000")),
    "reload": os.getenv("RELOAD", "false").lower() == "true",
    "log_level": LOG_LEVEL.lower(),
    "cors_origins": [
        "http://localhost:8081",  # Expo dev server
        "http://localhost:19006",  # Expo web
        "http://127.0.0.1:8081",
        "http://127.0.0.1:19006",
    ],
}


# ENVIRONMENT

DEBUG = os.getenv("DEBUG", "false").lower() == "true"
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
