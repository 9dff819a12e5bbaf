# =============================================
# File: magicommerce/utils/config.py
# Purpose: Typed settings read once from env and injected into components
# =============================================
from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import Optional


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()

def _env_int(name: str, default: int) -> int:
    try:
        value = int(os.getenv(name, str(default)))
    except Exception:
        return default
    return value if value > 0 else default

def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except Exception:
        return default


@dataclass(frozen=True)
class GatewayConfig:
    """
    Connection settings for the completion service.
    When `azure_endpoint` is set the Azure OpenAI deployment is used,
    otherwise the public OpenAI API.
    """
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    azure_endpoint: Optional[str] = None
    api_version: str = "2025-01-01-preview"
    timeout_s: float = 8.0

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def provider(self) -> str:
        return "azure" if self.azure_endpoint else "openai"

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        azure_endpoint = _env_str("AZURE_OPENAI_ENDPOINT")
        if azure_endpoint:
            return cls(
                api_key=_env_str("AZURE_OPENAI_API_KEY"),
                model=_env_str("AZURE_OPENAI_DEPLOYMENT_CHAT", "gpt-4o-mini"),
                azure_endpoint=azure_endpoint,
                api_version=_env_str("AZURE_OPENAI_API_VERSION", "2025-01-01-preview"),
                timeout_s=_env_float("LLM_TIMEOUT_SECONDS", 8.0),
            )
        return cls(
            api_key=_env_str("OPENAI_API_KEY"),
            model=_env_str("LLM_MODEL", "gpt-4o-mini"),
            timeout_s=_env_float("LLM_TIMEOUT_SECONDS", 8.0),
        )


@dataclass(frozen=True)
class PersonalizationConfig:
    candidate_pool_size: int = 50
    behavior_history_limit: int = 20
    preference_history_limit: int = 50
    prompt_behavior_events: int = 5
    preference_text_max_chars: int = 4000
    confidence_floor: float = 0.3
    default_limit: int = 10
    # None -> use GatewayConfig.timeout_s
    completion_timeout_s: Optional[float] = None

    @classmethod
    def from_env(cls) -> "PersonalizationConfig":
        floor = _env_float("REC_CONFIDENCE_FLOOR", 0.3)
        if not 0.0 <= floor < 1.0:
            floor = 0.3
        return cls(
            candidate_pool_size=_env_int("REC_CANDIDATE_K", 50),
            behavior_history_limit=_env_int("REC_HISTORY_LIMIT", 20),
            preference_history_limit=_env_int("PREF_HISTORY_LIMIT", 50),
            preference_text_max_chars=_env_int("PREF_TEXT_MAX_CHARS", 4000),
            confidence_floor=floor,
            default_limit=_env_int("REC_DEFAULT_LIMIT", 10),
        )


@dataclass(frozen=True)
class Settings:
    db_url: str = "sqlite:///./magicommerce.db"
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    personalization: PersonalizationConfig = field(default_factory=PersonalizationConfig)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            db_url=_env_str("DB_URL", "sqlite:///./magicommerce.db"),
            gateway=GatewayConfig.from_env(),
            personalization=PersonalizationConfig.from_env(),
        )
