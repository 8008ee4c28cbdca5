import logging
from typing import FrozenSet, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mirror_edge import vars as env

logger = logging.getLogger("uvicorn.error")

SubstitutionMode = Literal["global", "main-domain"]


class ProxyConfig(BaseModel):
    """Process-wide proxy settings, built once at startup and never mutated."""

    model_config = ConfigDict(frozen=True)

    own_domain: str = Field(min_length=1)
    processable_content_types: Tuple[str, ...]
    timeout_ms: int = Field(default=10000, gt=0)
    allowed_countries: Optional[FrozenSet[str]] = None
    country_header: str = "cf-ipcountry"
    forced_user_agent: Optional[str] = None
    substitution_mode: SubstitutionMode = "global"
    max_rewrite_body_bytes: int = Field(default=10 * 1024 * 1024, gt=0)

    @field_validator("own_domain")
    @classmethod
    def _normalize_own_domain(cls, value: str) -> str:
        value = value.strip().strip(".").lower()
        if not value:
            raise ValueError("own_domain must not be empty")
        return value

    @field_validator("processable_content_types")
    @classmethod
    def _normalize_content_types(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(t.strip().lower() for t in value if t.strip())

    @field_validator("allowed_countries")
    @classmethod
    def _normalize_countries(cls, value):
        if not value:
            return None
        return frozenset(c.strip().upper() for c in value if c.strip())

    @field_validator("forced_user_agent")
    @classmethod
    def _empty_user_agent_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


def load_proxy_config() -> ProxyConfig:
    """Assemble the ProxyConfig from the environment captured in ``vars``."""
    config = ProxyConfig(
        own_domain=env.OWN_DOMAIN,
        processable_content_types=tuple(env.PROCESSABLE_CONTENT_TYPES),
        timeout_ms=env.PROXY_TIMEOUT_MS,
        allowed_countries=frozenset(env.ALLOWED_COUNTRIES) or None,
        country_header=env.COUNTRY_HEADER,
        forced_user_agent=env.FORCED_USER_AGENT,
        substitution_mode=env.SUBSTITUTION_MODE,
        max_rewrite_body_bytes=env.MAX_REWRITE_BODY_BYTES,
    )
    logger.info(
        f"Proxy config loaded: own_domain={config.own_domain} "
        f"mode={config.substitution_mode} timeout_ms={config.timeout_ms} "
        f"country_gate={'on' if config.allowed_countries else 'off'}"
    )
    return config
