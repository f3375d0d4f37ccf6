"""Configuration loaded from the environment (and a local .env file)."""

from dataclasses import dataclass
import os
from pathlib import Path

from dotenv import load_dotenv

from layout import HORIZONTAL_SPACING, VERTICAL_SPACING


@dataclass(frozen=True)
class Settings:
    db_path: Path
    horizontal_spacing: float
    vertical_spacing: float
    log_level: str


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def get_settings() -> Settings:
    """Load settings from environment variables prefixed with FAMGRAPH_."""
    load_dotenv()

    return Settings(
        db_path=Path(os.getenv("FAMGRAPH_DB_PATH", "family_tree.db")),
        horizontal_spacing=_float_env("FAMGRAPH_H_SPACING", HORIZONTAL_SPACING),
        vertical_spacing=_float_env("FAMGRAPH_V_SPACING", VERTICAL_SPACING),
        log_level=os.getenv("FAMGRAPH_LOG_LEVEL", "WARNING").upper(),
    )
