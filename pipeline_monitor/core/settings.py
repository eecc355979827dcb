from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _cors_origins() -> list[str]:
    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    return origins


@dataclass(slots=True)
class Settings:
    """Process configuration resolved from the environment."""

    backend_url: str | None = None
    stages_file: Path = Path("stages.json")
    ingest_timeout: float = 30.0
    http_timeout: float = 10.0
    cors_origins: list[str] = field(default_factory=_cors_origins)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        stages_file = os.getenv("PIPELINE_STAGES_FILE") or "stages.json"
        return cls(
            backend_url=os.getenv("PIPELINE_BACKEND_URL") or None,
            stages_file=Path(stages_file).expanduser(),
            ingest_timeout=_float_env("PIPELINE_INGEST_TIMEOUT", 30.0),
            http_timeout=_float_env("PIPELINE_HTTP_TIMEOUT", 10.0),
            cors_origins=_cors_origins(),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )
