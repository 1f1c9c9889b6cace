"""Configuration model and loaders for lingocache.

Responsibilities:
- Define runtime configuration as a typed dataclass.
- Provide deterministic precedence resolution for provider, model, and credential settings.
- Provide loader entry points for file- and environment-based configuration.

Key types:
- `LingoCacheConfig`: normalized runtime settings for one process.
- `ProviderRuntimeConfig`: resolved provider/model/credential values.
- `RuntimeConfigSources`: optional value sources for precedence resolution.
- `ConfigLoader`: static construction helpers for `LingoCacheConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigurationError
from .llm.gemini_provider import DEFAULT_GEMINI_MODEL
from .llm.openai_provider import DEFAULT_OPENAI_MODEL
from .parsing import (
    normalize_optional_string,
    parse_positive_float,
    parse_positive_int,
)

SUPPORTED_PROVIDER_IDS = ("gemini", "openai")
DEFAULT_CACHE_DB_PATH = Path("lingocache.sqlite3")
IN_MEMORY_CACHE_TOKEN = ":memory:"

_DEFAULT_MIN_INTERVAL_SECONDS = 4.5
_DEFAULT_RATE_LIMIT_COOLDOWN_SECONDS = 10.0
_DEFAULT_REQUEST_TIMEOUT_SECONDS = 60.0
_DEFAULT_BATCH_LIMIT = 10

_API_KEY_ENV_KEYS = {"gemini": "GEMINI_API_KEY", "openai": "OPENAI_API_KEY"}


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for deterministic runtime value precedence.

    Attributes:
        cli: Values explicitly provided by CLI arguments.
        secure: Values loaded from secure local credential storage.
        env: Values loaded from environment variables.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    secure: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ProviderRuntimeConfig:
    """Resolved provider preference, models, and credentials for one process.

    Attributes:
        preferred_provider: Explicitly requested provider, or `None` for priority order.
        model_gemini: Gemini model identifier.
        model_openai: OpenAI model identifier.
        gemini_api_key: Optional Gemini API key (never persisted or logged).
        openai_api_key: Optional OpenAI API key (never persisted or logged).
    """

    preferred_provider: str | None
    model_gemini: str
    model_openai: str
    gemini_api_key: str | None = None
    openai_api_key: str | None = None

    def api_key_for(self, provider_id: str) -> str | None:
        """Return the resolved API key for a provider identifier."""

        if provider_id == "gemini":
            return self.gemini_api_key
        if provider_id == "openai":
            return self.openai_api_key
        return None

    def model_for(self, provider_id: str) -> str:
        """Return the resolved model for a provider identifier."""

        if provider_id == "gemini":
            return self.model_gemini
        if provider_id == "openai":
            return self.model_openai
        raise ConfigurationError(f"Unsupported provider `{provider_id}`.")

    def as_metadata(self) -> dict[str, str]:
        """Return non-secret runtime metadata safe to print or log."""

        return {
            "provider": self.preferred_provider or "auto",
            "model_gemini": self.model_gemini,
            "model_openai": self.model_openai,
            "gemini_api_key": "present" if self.gemini_api_key else "missing",
            "openai_api_key": "present" if self.openai_api_key else "missing",
        }


@dataclass(slots=True)
class LingoCacheConfig:
    """Runtime configuration for the translation cache and upstream client.

    Attributes:
        provider: Explicit provider identifier; `None` selects by priority.
        original_language: Language the content is authored in.
        model_gemini: Gemini model identifier.
        model_openai: OpenAI model identifier.
        gemini_api_key: Optional Gemini API key.
        openai_api_key: Optional OpenAI API key.
        min_interval_seconds: Global minimum interval between upstream dispatches.
        rate_limit_cooldown_seconds: Cooldown before the single rate-limit retry.
        request_timeout_seconds: Per-request upstream timeout.
        cache_db_path: SQLite path for the durable tier; `None` keeps it in memory.
        batch_limit: Maximum units accepted per batch request at the CLI boundary.
        runtime_sources: Optional runtime source overrides injected by CLI.
    """

    provider: str | None = None
    original_language: str = "English"
    model_gemini: str = DEFAULT_GEMINI_MODEL
    model_openai: str = DEFAULT_OPENAI_MODEL
    gemini_api_key: str | None = None
    openai_api_key: str | None = None
    min_interval_seconds: float = _DEFAULT_MIN_INTERVAL_SECONDS
    rate_limit_cooldown_seconds: float = _DEFAULT_RATE_LIMIT_COOLDOWN_SECONDS
    request_timeout_seconds: float = _DEFAULT_REQUEST_TIMEOUT_SECONDS
    cache_db_path: Path | None = DEFAULT_CACHE_DB_PATH
    batch_limit: int = _DEFAULT_BATCH_LIMIT
    runtime_sources: RuntimeConfigSources = field(default_factory=RuntimeConfigSources)

    def validate(self) -> None:
        """Validate configuration values before building runtime components."""

        if self.provider is not None:
            self._validate_provider_id(self.provider, "provider")
        self._require_non_empty(self.original_language, "original_language")
        self._require_non_empty(self.model_gemini, "model_gemini")
        self._require_non_empty(self.model_openai, "model_openai")
        for field_name in (
            "min_interval_seconds",
            "rate_limit_cooldown_seconds",
            "request_timeout_seconds",
        ):
            if getattr(self, field_name) <= 0.0:
                raise ConfigurationError(f"`{field_name}` must be a positive number.")
        if self.rate_limit_cooldown_seconds <= self.min_interval_seconds:
            raise ConfigurationError(
                "`rate_limit_cooldown_seconds` must be longer than `min_interval_seconds`."
            )
        if self.batch_limit <= 0:
            raise ConfigurationError("`batch_limit` must be a positive integer.")

    def with_runtime_sources(self, sources: RuntimeConfigSources) -> LingoCacheConfig:
        """Return a copy of this config with runtime source mappings attached."""

        return LingoCacheConfig(
            provider=self.provider,
            original_language=self.original_language,
            model_gemini=self.model_gemini,
            model_openai=self.model_openai,
            gemini_api_key=self.gemini_api_key,
            openai_api_key=self.openai_api_key,
            min_interval_seconds=self.min_interval_seconds,
            rate_limit_cooldown_seconds=self.rate_limit_cooldown_seconds,
            request_timeout_seconds=self.request_timeout_seconds,
            cache_db_path=self.cache_db_path,
            batch_limit=self.batch_limit,
            runtime_sources=sources,
        )

    def resolved_provider_runtime(
        self, sources: RuntimeConfigSources | None = None
    ) -> ProviderRuntimeConfig:
        """Resolve provider, model, and credential settings with deterministic precedence.

        Precedence for each key is:
        `cli` > `secure` > `env` > config field default.
        """

        resolved_sources = sources if sources is not None else self.runtime_sources

        preferred_provider = self._resolve_optional_runtime_value(
            key="provider",
            env_key="LINGOCACHE_PROVIDER",
            default_value=self.provider,
            sources=resolved_sources,
        )
        model_gemini = self._resolve_runtime_value(
            key="model_gemini",
            env_key="LINGOCACHE_MODEL_GEMINI",
            default_value=self.model_gemini,
            sources=resolved_sources,
        )
        model_openai = self._resolve_runtime_value(
            key="model_openai",
            env_key="LINGOCACHE_MODEL_OPENAI",
            default_value=self.model_openai,
            sources=resolved_sources,
        )
        gemini_api_key = self._resolve_optional_runtime_value(
            key="gemini_api_key",
            env_key=_API_KEY_ENV_KEYS["gemini"],
            default_value=self.gemini_api_key,
            sources=resolved_sources,
        )
        openai_api_key = self._resolve_optional_runtime_value(
            key="openai_api_key",
            env_key=_API_KEY_ENV_KEYS["openai"],
            default_value=self.openai_api_key,
            sources=resolved_sources,
        )

        if preferred_provider is not None:
            preferred_provider = preferred_provider.lower()
            self._validate_provider_id(preferred_provider, "provider")
        return ProviderRuntimeConfig(
            preferred_provider=preferred_provider,
            model_gemini=model_gemini,
            model_openai=model_openai,
            gemini_api_key=gemini_api_key,
            openai_api_key=openai_api_key,
        )

    def _resolve_runtime_value(
        self,
        key: str,
        env_key: str,
        default_value: str | None,
        sources: RuntimeConfigSources,
    ) -> str:
        """Resolve a required runtime value from sources in deterministic precedence order."""

        resolved = self._resolve_optional_runtime_value(key, env_key, default_value, sources)
        if resolved is None:
            raise ConfigurationError(
                f"`{key}` could not be resolved from CLI, secure storage, env, or defaults."
            )
        return resolved

    def _resolve_optional_runtime_value(
        self,
        key: str,
        env_key: str,
        default_value: str | None,
        sources: RuntimeConfigSources,
    ) -> str | None:
        """Resolve an optional runtime value from sources in deterministic order."""

        cli_value = self._normalized_lookup(sources.cli, key)
        if cli_value is not None:
            return cli_value

        secure_value = self._normalized_lookup(sources.secure, key)
        if secure_value is not None:
            return secure_value

        env_value = self._normalized_lookup(sources.env, env_key)
        if env_value is not None:
            return env_value

        return normalize_optional_string(default_value)

    @staticmethod
    def _normalized_lookup(mapping: Mapping[str, str], key: str) -> str | None:
        """Return a stripped mapping value for a key or `None` when missing/blank."""

        if key not in mapping:
            return None
        return normalize_optional_string(mapping.get(key))

    @staticmethod
    def _require_non_empty(value: str, field_name: str) -> None:
        """Validate that string fields are not empty."""

        if not isinstance(value, str) or not value.strip():
            raise ConfigurationError(f"`{field_name}` must be a non-empty string.")

    @staticmethod
    def _validate_provider_id(provider_id: str, field_name: str) -> None:
        """Validate provider identifiers against supported providers."""

        if provider_id not in SUPPORTED_PROVIDER_IDS:
            supported = ", ".join(SUPPORTED_PROVIDER_IDS)
            raise ConfigurationError(
                f"Unsupported `{field_name}` value `{provider_id}`; supported: {supported}."
            )


class ConfigLoader:
    """Factory methods for creating `LingoCacheConfig` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(
        {
            "provider",
            "original_language",
            "model_gemini",
            "model_openai",
            "gemini_api_key",
            "openai_api_key",
            "min_interval_seconds",
            "rate_limit_cooldown_seconds",
            "request_timeout_seconds",
            "cache_db_path",
            "batch_limit",
        }
    )
    _RUNTIME_ENV_KEYS = frozenset(
        {
            "LINGOCACHE_PROVIDER",
            "LINGOCACHE_MODEL_GEMINI",
            "LINGOCACHE_MODEL_OPENAI",
            "GEMINI_API_KEY",
            "OPENAI_API_KEY",
        }
    )

    @staticmethod
    def from_yaml(path: Path) -> LingoCacheConfig:
        """Create a validated config from a YAML file."""

        path_text = path.read_text(encoding="utf-8")
        payload = ConfigLoader._parse_yaml_payload(path_text, path)
        return ConfigLoader._build_config_from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> LingoCacheConfig:
        """Create a validated config from environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        optional = ConfigLoader._optional_env_string

        provider = optional(env_map, "LINGOCACHE_PROVIDER")
        cache_db_path = ConfigLoader._cache_path_from_text(
            optional(env_map, "LINGOCACHE_CACHE_DB_PATH"),
            default=DEFAULT_CACHE_DB_PATH,
        )
        runtime_env = {
            key: value
            for key, value in env_map.items()
            if key in ConfigLoader._RUNTIME_ENV_KEYS
            and normalize_optional_string(value) is not None
        }

        config = LingoCacheConfig(
            provider=provider.lower() if provider is not None else None,
            original_language=optional(env_map, "LINGOCACHE_ORIGINAL_LANGUAGE") or "English",
            model_gemini=optional(env_map, "LINGOCACHE_MODEL_GEMINI") or DEFAULT_GEMINI_MODEL,
            model_openai=optional(env_map, "LINGOCACHE_MODEL_OPENAI") or DEFAULT_OPENAI_MODEL,
            gemini_api_key=optional(env_map, "GEMINI_API_KEY"),
            openai_api_key=optional(env_map, "OPENAI_API_KEY"),
            min_interval_seconds=ConfigLoader._optional_env_positive_float(
                env_map, "LINGOCACHE_MIN_INTERVAL_SECONDS", _DEFAULT_MIN_INTERVAL_SECONDS
            ),
            rate_limit_cooldown_seconds=ConfigLoader._optional_env_positive_float(
                env_map,
                "LINGOCACHE_RATE_LIMIT_COOLDOWN_SECONDS",
                _DEFAULT_RATE_LIMIT_COOLDOWN_SECONDS,
            ),
            request_timeout_seconds=ConfigLoader._optional_env_positive_float(
                env_map, "LINGOCACHE_REQUEST_TIMEOUT_SECONDS", _DEFAULT_REQUEST_TIMEOUT_SECONDS
            ),
            cache_db_path=cache_db_path,
            batch_limit=ConfigLoader._optional_env_positive_int(
                env_map, "LINGOCACHE_BATCH_LIMIT", _DEFAULT_BATCH_LIMIT
            ),
            runtime_sources=RuntimeConfigSources(env=runtime_env),
        )
        config.validate()
        return config

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"YAML config `{path}` is not valid YAML: {exc}") from exc

        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ConfigurationError(
                f"YAML config `{path}` must contain a top-level mapping/object."
            )
        return payload

    @staticmethod
    def _build_config_from_mapping(
        payload: Mapping[str, Any], source_label: str
    ) -> LingoCacheConfig:
        """Build a validated config from a normalized mapping payload."""

        ConfigLoader._validate_yaml_keys(payload, source_label)
        optional = ConfigLoader._optional_non_empty_string

        provider = optional(payload, "provider", source_label)
        if "cache_db_path" in payload and payload["cache_db_path"] is None:
            cache_db_path = None
        else:
            cache_db_path = ConfigLoader._cache_path_from_text(
                optional(payload, "cache_db_path", source_label),
                default=DEFAULT_CACHE_DB_PATH,
            )

        config = LingoCacheConfig(
            provider=provider.lower() if provider is not None else None,
            original_language=optional(payload, "original_language", source_label) or "English",
            model_gemini=optional(payload, "model_gemini", source_label) or DEFAULT_GEMINI_MODEL,
            model_openai=optional(payload, "model_openai", source_label) or DEFAULT_OPENAI_MODEL,
            gemini_api_key=optional(payload, "gemini_api_key", source_label),
            openai_api_key=optional(payload, "openai_api_key", source_label),
            min_interval_seconds=ConfigLoader._optional_positive_float(
                payload, "min_interval_seconds", source_label, _DEFAULT_MIN_INTERVAL_SECONDS
            ),
            rate_limit_cooldown_seconds=ConfigLoader._optional_positive_float(
                payload,
                "rate_limit_cooldown_seconds",
                source_label,
                _DEFAULT_RATE_LIMIT_COOLDOWN_SECONDS,
            ),
            request_timeout_seconds=ConfigLoader._optional_positive_float(
                payload,
                "request_timeout_seconds",
                source_label,
                _DEFAULT_REQUEST_TIMEOUT_SECONDS,
            ),
            cache_db_path=cache_db_path,
            batch_limit=ConfigLoader._optional_positive_int(
                payload, "batch_limit", source_label, _DEFAULT_BATCH_LIMIT
            ),
        )
        config.validate()
        return config

    @staticmethod
    def _validate_yaml_keys(payload: Mapping[str, Any], source_label: str) -> None:
        """Reject unknown YAML keys."""

        unknown = sorted(
            str(key) for key in set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS)
        )
        if unknown:
            key_list = ", ".join(unknown)
            raise ConfigurationError(f"{source_label} includes unsupported key(s): {key_list}.")

    @staticmethod
    def _cache_path_from_text(value: str | None, default: Path) -> Path | None:
        """Map a configured cache path to a `Path`, or `None` for an in-memory tier."""

        if value is None:
            return default
        if value == IN_MEMORY_CACHE_TOKEN:
            return None
        return Path(value)

    @staticmethod
    def _optional_non_empty_string(
        payload: Mapping[str, Any], key: str, source_label: str
    ) -> str | None:
        """Read an optional scalar field and normalize blank values to `None`."""

        if key not in payload:
            return None
        raw_value = payload[key]
        if isinstance(raw_value, (Mapping, list)):
            raise ConfigurationError(f"{source_label} field `{key}` must be a scalar value.")
        return normalize_optional_string(raw_value)

    @staticmethod
    def _optional_positive_float(
        payload: Mapping[str, Any], key: str, source_label: str, default: float
    ) -> float:
        """Read and validate a positive number payload field."""

        if key not in payload or payload[key] is None:
            return default
        try:
            return parse_positive_float(payload[key], key)
        except ValueError as exc:
            raise ConfigurationError(f"{source_label} field {exc}") from exc

    @staticmethod
    def _optional_positive_int(
        payload: Mapping[str, Any], key: str, source_label: str, default: int
    ) -> int:
        """Read and validate a positive integer payload field."""

        if key not in payload or payload[key] is None:
            return default
        try:
            return parse_positive_int(payload[key], key)
        except ValueError as exc:
            raise ConfigurationError(f"{source_label} field {exc}") from exc

    @staticmethod
    def _optional_env_string(env: Mapping[str, str], key: str) -> str | None:
        """Read and normalize optional string environment variable values."""

        if key not in env:
            return None
        return normalize_optional_string(env.get(key))

    @staticmethod
    def _optional_env_positive_float(env: Mapping[str, str], key: str, default: float) -> float:
        """Read an optional positive number from environment mapping."""

        raw_value = ConfigLoader._optional_env_string(env, key)
        if raw_value is None:
            return default
        try:
            return parse_positive_float(raw_value, key)
        except ValueError as exc:
            raise ConfigurationError(f"Environment variable {exc}") from exc

    @staticmethod
    def _optional_env_positive_int(env: Mapping[str, str], key: str, default: int) -> int:
        """Read an optional positive integer from environment mapping."""

        raw_value = ConfigLoader._optional_env_string(env, key)
        if raw_value is None:
            return default
        try:
            return parse_positive_int(raw_value, key)
        except ValueError as exc:
            raise ConfigurationError(f"Environment variable {exc}") from exc
