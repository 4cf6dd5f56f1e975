"""
Configuration Management for Traveler

Loads the YAML config document (persona, interests, sources, ranking, output,
webhook) and applies environment variables for secrets and deployment paths.

Configuration is built once at process start into frozen dataclasses and
passed explicitly to the curator, the ingress apps and the HTTP clients.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

import yaml

from .errors import ConfigurationError

DEFAULT_CONFIG_PATH = Path("configs") / "default.yaml"
DEFAULT_STATE_DIR = "state"
STATE_FILE_NAME = "seen.json"
DEFAULT_TAGS: Tuple[str, ...] = ("inbox", "traveler")


@dataclass(frozen=True)
class PersonaConfig:
    """Who signs the notes"""
    name: str = "Traveler"


@dataclass(frozen=True)
class InterestsConfig:
    """Keyword rules for the scorer"""
    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SourceConfig:
    """A single feed source"""
    url: str
    type: str = "rss"
    name: str = "rss"


@dataclass(frozen=True)
class RankingConfig:
    """Selection policy: daily cap, score floor, dedupe window"""
    daily_limit: int = 3
    min_score: float = 0.65
    dedupe_window_days: int = 14


@dataclass(frozen=True)
class RoteOutputConfig:
    """How notes are written to Rote"""
    enabled: bool = True
    tags: Tuple[str, ...] = DEFAULT_TAGS


@dataclass(frozen=True)
class RoteApiConfig:
    """Rote open-key API endpoint (environment only)"""
    api_base: str = ""
    openkey: str = ""


@dataclass(frozen=True)
class WebhookConfig:
    """Webhook-to-notes server"""
    enabled: bool = False
    port: int = 8787
    path: str = "/webhook"
    max_body_kb: int = 512
    token: str = ""
    secret: str = ""

    @property
    def max_body_bytes(self) -> int:
        return self.max_body_kb * 1024


@dataclass(frozen=True)
class TravelerConfig:
    """Main Traveler configuration"""
    persona: PersonaConfig = field(default_factory=PersonaConfig)
    interests: InterestsConfig = field(default_factory=InterestsConfig)
    sources: Tuple[SourceConfig, ...] = ()
    ranking: RankingConfig = field(default_factory=RankingConfig)
    rote: RoteOutputConfig = field(default_factory=RoteOutputConfig)
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    api: RoteApiConfig = field(default_factory=RoteApiConfig)
    state_dir: str = DEFAULT_STATE_DIR
    http_timeout: float = 30.0

    @property
    def state_path(self) -> Path:
        return Path(self.state_dir) / STATE_FILE_NAME


@dataclass(frozen=True)
class ReceiverConfig:
    """Passive receiver configuration (environment only)"""
    host: str = "0.0.0.0"
    port: int = 8788
    path: str = "/webhook"
    shared_secret: str = ""
    allow_sources: FrozenSet[str] = frozenset()
    gateway_url: str = ""
    gateway_token: str = ""
    session_key: str = ""
    http_timeout: float = 30.0

    @property
    def gateway_configured(self) -> bool:
        return bool(self.gateway_url and self.gateway_token)


def _section(data: Mapping[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{key}' must be a mapping")
    return value


def _string_list(value: Any, key: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"'{key}' must be a list of strings")
    return tuple(str(v).strip() for v in value if str(v).strip())


def _parse_persona_config(data: Mapping[str, Any]) -> PersonaConfig:
    persona_data = _section(data, "persona")
    return PersonaConfig(name=str(persona_data.get("name") or "Traveler"))


def _parse_interests_config(data: Mapping[str, Any]) -> InterestsConfig:
    interests_data = _section(data, "interests")
    return InterestsConfig(
        include=_string_list(interests_data.get("include"), "interests.include"),
        exclude=_string_list(interests_data.get("exclude"), "interests.exclude"),
    )


def _parse_sources_config(data: Mapping[str, Any]) -> Tuple[SourceConfig, ...]:
    sources_data = data.get("sources") or []
    if not isinstance(sources_data, list):
        raise ConfigurationError("'sources' must be a list")

    sources = []
    for i, source_data in enumerate(sources_data):
        if not isinstance(source_data, dict) or not source_data.get("url"):
            raise ConfigurationError(f"sources[{i}] needs a 'url'")
        sources.append(SourceConfig(
            url=str(source_data["url"]).strip(),
            type=str(source_data.get("type") or "rss"),
            name=str(source_data.get("name") or "rss"),
        ))
    return tuple(sources)


def _parse_ranking_config(data: Mapping[str, Any]) -> RankingConfig:
    """Parse ranking section, rejecting values outside the policy's domain"""
    ranking_data = _section(data, "ranking")
    defaults = RankingConfig()
    try:
        daily_limit = int(ranking_data.get("daily_limit", defaults.daily_limit))
        min_score = float(ranking_data.get("min_score", defaults.min_score))
        dedupe_window_days = int(
            ranking_data.get("dedupe_window_days", defaults.dedupe_window_days)
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid ranking config: {e}") from e

    if daily_limit < 0:
        raise ConfigurationError("ranking.daily_limit must be >= 0")
    if not 0.0 <= min_score <= 1.0:
        raise ConfigurationError("ranking.min_score must be within [0, 1]")
    if dedupe_window_days < 0:
        raise ConfigurationError("ranking.dedupe_window_days must be >= 0")

    return RankingConfig(
        daily_limit=daily_limit,
        min_score=min_score,
        dedupe_window_days=dedupe_window_days,
    )


def _parse_rote_output_config(data: Mapping[str, Any]) -> RoteOutputConfig:
    output_data = _section(data, "output")
    rote_data = output_data.get("rote") or {}
    if not isinstance(rote_data, dict):
        raise ConfigurationError("'output.rote' must be a mapping")
    tags = _string_list(rote_data.get("tags"), "output.rote.tags")
    return RoteOutputConfig(
        enabled=bool(rote_data.get("enabled", True)),
        tags=tags or DEFAULT_TAGS,
    )


def _parse_webhook_config(data: Mapping[str, Any], env: Mapping[str, str]) -> WebhookConfig:
    webhook_data = _section(data, "webhook")
    defaults = WebhookConfig()
    try:
        port = int(webhook_data.get("port", defaults.port))
        max_body_kb = int(webhook_data.get("max_body_kb", defaults.max_body_kb))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid webhook config: {e}") from e

    path = str(webhook_data.get("path") or defaults.path)
    if not path.startswith("/"):
        path = "/" + path
    if max_body_kb <= 0:
        raise ConfigurationError("webhook.max_body_kb must be > 0")

    return WebhookConfig(
        enabled=bool(webhook_data.get("enabled", defaults.enabled)),
        port=port,
        path=path,
        max_body_kb=max_body_kb,
        token=_env(env, "WEBHOOK_TOKEN"),
        secret=_env(env, "WEBHOOK_SECRET"),
    )


def _env(env: Mapping[str, str], name: str, default: str = "") -> str:
    return (env.get(name) or default).strip()


def parse_config(data: Mapping[str, Any], env: Optional[Mapping[str, str]] = None) -> TravelerConfig:
    """
    Build a TravelerConfig from a parsed config document.

    Secrets and deployment paths come from the environment:
    ROTE_API_BASE, ROTE_OPENKEY, WEBHOOK_TOKEN, WEBHOOK_SECRET,
    TRAVELER_STATE_DIR, TRAVELER_HTTP_TIMEOUT.
    """
    env = os.environ if env is None else env

    try:
        http_timeout = float(_env(env, "TRAVELER_HTTP_TIMEOUT", "30"))
    except ValueError as e:
        raise ConfigurationError(f"Invalid TRAVELER_HTTP_TIMEOUT: {e}") from e

    return TravelerConfig(
        persona=_parse_persona_config(data),
        interests=_parse_interests_config(data),
        sources=_parse_sources_config(data),
        ranking=_parse_ranking_config(data),
        rote=_parse_rote_output_config(data),
        webhook=_parse_webhook_config(data, env),
        api=RoteApiConfig(
            api_base=_env(env, "ROTE_API_BASE"),
            openkey=_env(env, "ROTE_OPENKEY"),
        ),
        state_dir=_env(env, "TRAVELER_STATE_DIR", DEFAULT_STATE_DIR),
        http_timeout=http_timeout,
    )


def load_config(
    path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> TravelerConfig:
    """
    Load configuration from a YAML file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (secrets, state dir)
    2. Config file (default: configs/default.yaml)
    3. Default values
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {config_path}") from e
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config file {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    return parse_config(data, env)


def load_receiver_config(env: Optional[Mapping[str, str]] = None) -> ReceiverConfig:
    """Load passive receiver configuration from environment variables"""
    env = os.environ if env is None else env

    try:
        port = int(_env(env, "PORT", "8788"))
        http_timeout = float(_env(env, "TRAVELER_HTTP_TIMEOUT", "30"))
    except ValueError as e:
        raise ConfigurationError(f"Invalid receiver config: {e}") from e

    path = _env(env, "WEBHOOK_PATH", "/webhook") or "/webhook"
    if not path.startswith("/"):
        path = "/" + path

    allow_raw = _env(env, "ALLOW_SOURCES")
    allow_sources = frozenset(
        s.strip() for s in allow_raw.split(",") if s.strip()
    ) if allow_raw else frozenset()

    return ReceiverConfig(
        host=_env(env, "HOST", "0.0.0.0"),
        port=port,
        path=path,
        shared_secret=_env(env, "RECEIVER_SHARED_SECRET"),
        allow_sources=allow_sources,
        gateway_url=_env(env, "OPENCLAW_GATEWAY_URL"),
        gateway_token=_env(env, "OPENCLAW_GATEWAY_TOKEN"),
        session_key=_env(env, "OPENCLAW_SESSION_KEY"),
        http_timeout=http_timeout,
    )
