"""
Package settings.

Environment-driven defaults; every component also accepts its own
config dataclass, which takes precedence over these values.
"""

import os
from dataclasses import dataclass


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Package configuration."""

    # Logging
    log_level: str = os.getenv("SIGNET_LOG_LEVEL", "INFO")
    log_json: bool = _flag("SIGNET_LOG_JSON", "true")

    # Offload
    executor: str = os.getenv("SIGNET_EXECUTOR", "process")  # "process" | "thread"
    max_workers: int = int(os.getenv("SIGNET_MAX_WORKERS", "2"))

    # Text-embedding collaborator
    embedding_model: str = os.getenv("SIGNET_EMBEDDING_MODEL", "all-MiniLM-L6-v2")
    embedding_enabled: bool = _flag("SIGNET_EMBEDDING_ENABLED", "true")

    # Hydration
    ingestion_source: str = os.getenv("SIGNET_INGESTION_SOURCE", "Document Import")


# Global settings instance
settings = Settings()
