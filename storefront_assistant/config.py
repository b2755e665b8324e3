import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


@dataclass(frozen=True)
class Settings:
    model_provider: str
    gemini_api_key: Optional[str]
    gemini_model: str
    openai_api_key: Optional[str]
    openai_model: str
    openai_base_url: Optional[str]
    result_limit: int
    history_window: int
    catalog_path: str
    store_context_path: str
    analytics_path: Optional[str]
    rate_limit_max: int
    rate_limit_window: int
    log_level: str

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the environment, loading a local .env first.
        Values already present in the environment win over the .env file.
        """
        load_dotenv(override=False)
        return cls(
            model_provider=(_env_str("MODEL_PROVIDER", "gemini") or "gemini").lower(),
            gemini_api_key=_env_str("GEMINI_API_KEY"),
            gemini_model=_env_str("GEMINI_MODEL", "gemini-1.5-flash"),
            openai_api_key=_env_str("OPENAI_API_KEY"),
            openai_model=_env_str("OPENAI_MODEL_NAME", "gpt-4o-mini"),
            openai_base_url=_env_str("OPENAI_BASE_URL"),
            result_limit=_env_int("DISCOVERY_RESULT_LIMIT", 5),
            history_window=_env_int("DISCOVERY_HISTORY_WINDOW", 5),
            catalog_path=_env_str("CATALOG_PATH", os.path.join("data", "demo_products.json")),
            store_context_path=_env_str("STORE_CONTEXT_PATH", os.path.join("data", "store_context.json")),
            # An explicitly empty ANALYTICS_PATH disables event logging.
            analytics_path=os.getenv("ANALYTICS_PATH", os.path.join("data", "analytics_events.jsonl")).strip() or None,
            rate_limit_max=_env_int("RATE_LIMIT_MAX", 60),
            rate_limit_window=_env_int("RATE_LIMIT_WINDOW", 60),
            log_level=(_env_str("LOG_LEVEL", "INFO") or "INFO").upper(),
        )

    @property
    def has_model_credentials(self) -> bool:
        if self.model_provider == "openai":
            return bool(self.openai_api_key)
        return bool(self.gemini_api_key)
