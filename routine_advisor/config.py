from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

HISTORY_SEND_LIMIT = 20
HISTORY_PERSIST_LIMIT = 50
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    """Configuration container for the relay proxy and the catalog client."""
    openai_api_key: str
    openai_model: str
    upstream_url: str
    max_tokens: int
    temperature: float
    upstream_timeout: float
    brand_name: str
    cors_enabled: bool
    relay_url: str
    catalog_source: str
    store_path: Path
    prompts_dir: Path
    log_level: str


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a Settings instance.
    Side Effects / State: Reads environment variables and filesystem paths.
    Dependencies: Uses os.getenv and BASE_DIR for default paths.
    Failure Modes: Invalid MAX_TOKENS/TEMPERATURE/UPSTREAM_TIMEOUT values raise ValueError.
    If Removed: Neither the relay nor the client can be configured and both fail at startup.
    Testing Notes: Verify defaults and overrides via environment variables.
    """
    # Resolve store and prompt paths, then build Settings.
    store_path = os.getenv("STORE_PATH")
    if store_path:
        store_file = Path(store_path)
    else:
        store_file = (BASE_DIR / ".." / "data" / "local_store.json").resolve()

    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o"),
        upstream_url=os.getenv("UPSTREAM_URL", "https://api.openai.com/v1/chat/completions"),
        max_tokens=int(os.getenv("MAX_TOKENS", "800")),
        temperature=float(os.getenv("TEMPERATURE", "0.7")),
        upstream_timeout=float(os.getenv("UPSTREAM_TIMEOUT", "60")),
        brand_name=os.getenv("BRAND_NAME", "L'Oréal"),
        cors_enabled=_env_flag("CORS_ENABLED", True),
        relay_url=os.getenv("RELAY_URL", "").strip(),
        catalog_source=os.getenv("CATALOG_SOURCE", "products.json"),
        store_path=store_file,
        prompts_dir=(BASE_DIR / "prompts").resolve(),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level_name: str) -> None:
    """Install the root handler once; later calls only adjust the package level."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("routine_advisor").setLevel(level)


def _env_flag(name: str, default: bool) -> bool:
    # Accept the usual truthy spellings; anything else is False.
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}
