"""Command-line interface for lingocache.

Responsibilities:
- Expose user-facing commands for content translation and cache maintenance.
- Convert CLI arguments into `LingoCacheConfig` and runtime components.
- Enforce boundary limits such as the batch size cap.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Annotated, Any

import typer

from .cli_rendering import (
    echo_batch_results,
    echo_cache_stats,
    echo_translation_result,
    exit_with_command_error,
)
from .cli_runtime import normalize_provider_option, resolve_provider_runtime_sources
from .config import ConfigLoader, LingoCacheConfig, RuntimeConfigSources
from .credentials import create_credential_store
from .errors import CommandStageError, ConfigurationError
from .models.datatypes import PuzzleFields, TrainingScenario
from .orchestrator.orchestrator import TranslationOrchestrator
from .parsing import normalize_optional_string
from .runtime import build_cache, build_orchestrator
from .telemetry.logger import configure_logging

app = typer.Typer(
    name="lingocache",
    no_args_is_help=True,
    help="lingocache CLI.",
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to YAML config file with runtime defaults."),
]
LanguageOption = Annotated[
    str | None,
    typer.Option(
        "--language",
        help="Target language. Omit (or pass the original language) for pass-through.",
    ),
]
ProviderOption = Annotated[
    str | None,
    typer.Option("--provider", help="Upstream provider override: `gemini` or `openai`."),
]
ModelOption = Annotated[
    str | None,
    typer.Option("--model", help="Model override for the selected `--provider`."),
]
ApiKeyOption = Annotated[
    str | None,
    typer.Option("--api-key", help="API key for the selected `--provider`."),
]
StoreApiKeyOption = Annotated[
    bool,
    typer.Option(
        "--store-api-key",
        help="Persist the `--api-key` value in secure credential storage.",
    ),
]
TimeoutOption = Annotated[
    float | None,
    typer.Option("--timeout", help="Per-request upstream timeout in seconds."),
]


@app.callback()
def main_callback(
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="Log level for structured log lines on stderr."),
    ] = "WARNING",
) -> None:
    """Translate learning content through a shared two-tier cache."""

    configure_logging(level=log_level.upper())


def _load_config(config_file: Path | None) -> LingoCacheConfig:
    """Load config from YAML when requested, otherwise from the environment."""

    try:
        if config_file is None:
            return ConfigLoader.from_env()
        return ConfigLoader.from_yaml(config_file)
    except FileNotFoundError as exc:
        raise CommandStageError(
            stage="config",
            detail=f"Config file not found: `{config_file}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise CommandStageError(
            stage="config",
            detail=f"Invalid configuration: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc


def _build_command_orchestrator(
    base_config: LingoCacheConfig,
    provider: str | None,
    model: str | None,
    api_key: str | None,
    store_api_key: bool,
) -> TranslationOrchestrator:
    """Resolve runtime sources over a loaded config, then build the orchestrator."""

    runtime_cli_values, runtime_secure_values = resolve_provider_runtime_sources(
        provider=provider,
        model=model,
        api_key=api_key,
        store_api_key=store_api_key,
        credential_store_factory=create_credential_store,
    )
    config = base_config.with_runtime_sources(
        RuntimeConfigSources(
            cli=runtime_cli_values,
            secure=runtime_secure_values,
            env=os.environ,
        )
    )
    try:
        return build_orchestrator(config)
    except ConfigurationError as exc:
        raise CommandStageError(
            stage="provider",
            detail=str(exc),
            hint=(
                "Set GEMINI_API_KEY or OPENAI_API_KEY, pass `--provider` with `--api-key`, "
                "or store a key via `lingocache credentials --set-api-key`."
            ),
        ) from exc


def _read_json_file(path: Path) -> Any:
    """Read and decode one JSON input file."""

    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise CommandStageError(
            stage="input",
            detail=f"Input file not found: `{path}`.",
        ) from exc
    except json.JSONDecodeError as exc:
        raise CommandStageError(
            stage="input",
            detail=f"Input file `{path}` is not valid JSON: {exc.msg}.",
        ) from exc


def _require_record(payload: Any, path: Path) -> dict[str, Any]:
    """Require a decoded JSON input to be one object."""

    if not isinstance(payload, dict):
        raise CommandStageError(
            stage="input",
            detail=f"Input file `{path}` must contain a JSON object.",
        )
    return payload


def _build_unit(factory: Any, record: dict[str, Any], path: Path) -> Any:
    """Build a content unit from a record and map validation failures to input errors."""

    try:
        return factory(record)
    except ValueError as exc:
        raise CommandStageError(
            stage="input",
            detail=f"Invalid record in `{path}`: {exc}",
        ) from exc


def _load_feedback(path: Path) -> str | dict[str, Any]:
    """Load feedback as plain text, or as JSON for `.json` files."""

    if path.suffix.lower() != ".json":
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise CommandStageError(
                stage="input",
                detail=f"Input file not found: `{path}`.",
            ) from exc
        if normalize_optional_string(text) is None:
            raise CommandStageError(stage="input", detail=f"Feedback file `{path}` is empty.")
        return text.strip()

    payload = _read_json_file(path)
    if isinstance(payload, str) and payload.strip():
        return payload
    if isinstance(payload, dict) and payload:
        return payload
    raise CommandStageError(
        stage="input",
        detail=f"Feedback file `{path}` must contain a non-empty string or object.",
    )


@app.command("translate-puzzle")
def translate_puzzle_command(
    puzzle_file: Annotated[Path, typer.Argument(help="Path to one puzzle JSON record.")],
    language: LanguageOption = None,
    config_file: ConfigOption = None,
    provider: ProviderOption = None,
    model: ModelOption = None,
    api_key: ApiKeyOption = None,
    store_api_key: StoreApiKeyOption = False,
    timeout: TimeoutOption = None,
) -> None:
    """Translate one puzzle and print the translated fields as JSON."""

    try:
        record = _require_record(_read_json_file(puzzle_file), puzzle_file)
        puzzle = _build_unit(PuzzleFields.from_mapping, record, puzzle_file)
        orchestrator = _build_command_orchestrator(
            _load_config(config_file), provider, model, api_key, store_api_key
        )
        result = orchestrator.translate_puzzle(puzzle, language, timeout_seconds=timeout)
    except Exception as exc:
        exit_with_command_error("translate-puzzle", exc)

    echo_translation_result(result)


@app.command("translate-batch")
def translate_batch_command(
    puzzles_file: Annotated[Path, typer.Argument(help="Path to a JSON array of puzzles.")],
    language: LanguageOption = None,
    config_file: ConfigOption = None,
    provider: ProviderOption = None,
    model: ModelOption = None,
    api_key: ApiKeyOption = None,
    store_api_key: StoreApiKeyOption = False,
    timeout: TimeoutOption = None,
) -> None:
    """Translate a batch of puzzles in input order."""

    try:
        payload = _read_json_file(puzzles_file)
        if not isinstance(payload, list):
            raise CommandStageError(
                stage="input",
                detail=f"Input file `{puzzles_file}` must contain a JSON array of puzzles.",
            )
        config = _load_config(config_file)
        if len(payload) > config.batch_limit:
            raise CommandStageError(
                stage="input",
                detail=(
                    f"Batch of {len(payload)} puzzles exceeds the limit of "
                    f"{config.batch_limit}."
                ),
                hint="Split the input into smaller batches.",
            )
        puzzles = [
            _build_unit(
                PuzzleFields.from_mapping,
                _require_record(record, puzzles_file),
                puzzles_file,
            )
            for record in payload
        ]
        orchestrator = _build_command_orchestrator(
            config, provider, model, api_key, store_api_key
        )
        results = orchestrator.translate_batch(puzzles, language, timeout_seconds=timeout)
    except Exception as exc:
        exit_with_command_error("translate-batch", exc)

    echo_batch_results(results)


@app.command("translate-feedback")
def translate_feedback_command(
    feedback_file: Annotated[
        Path,
        typer.Argument(help="Path to feedback text (`.txt`) or a JSON feedback object."),
    ],
    language: LanguageOption = None,
    config_file: ConfigOption = None,
    provider: ProviderOption = None,
    model: ModelOption = None,
    api_key: ApiKeyOption = None,
    store_api_key: StoreApiKeyOption = False,
    timeout: TimeoutOption = None,
) -> None:
    """Translate grader feedback; results are cached for this process only."""

    try:
        feedback = _load_feedback(feedback_file)
        orchestrator = _build_command_orchestrator(
            _load_config(config_file), provider, model, api_key, store_api_key
        )
        result = orchestrator.translate_feedback(feedback, language, timeout_seconds=timeout)
    except Exception as exc:
        exit_with_command_error("translate-feedback", exc)

    echo_translation_result(result)


@app.command("translate-scenario")
def translate_scenario_command(
    scenario_file: Annotated[Path, typer.Argument(help="Path to one scenario JSON record.")],
    language: LanguageOption = None,
    config_file: ConfigOption = None,
    provider: ProviderOption = None,
    model: ModelOption = None,
    api_key: ApiKeyOption = None,
    store_api_key: StoreApiKeyOption = False,
    timeout: TimeoutOption = None,
) -> None:
    """Translate one training scenario, merged over the original scenario."""

    try:
        record = _require_record(_read_json_file(scenario_file), scenario_file)
        scenario = _build_unit(TrainingScenario.from_mapping, record, scenario_file)
        orchestrator = _build_command_orchestrator(
            _load_config(config_file), provider, model, api_key, store_api_key
        )
        result = orchestrator.translate_scenario(scenario, language, timeout_seconds=timeout)
    except Exception as exc:
        exit_with_command_error("translate-scenario", exc)

    echo_translation_result(result)


@app.command("cache-stats")
def cache_stats_command(config_file: ConfigOption = None) -> None:
    """Print durable cache counts per language."""

    try:
        cache = build_cache(_load_config(config_file))
        stats = cache.stats()
    except Exception as exc:
        exit_with_command_error("cache-stats", exc)

    echo_cache_stats(stats)


@app.command("cache-clear")
def cache_clear_command(
    language: Annotated[
        str,
        typer.Option("--language", help="Language whose cached entries should be removed."),
    ],
    config_file: ConfigOption = None,
) -> None:
    """Explicitly invalidate every cached entry for one language."""

    try:
        if normalize_optional_string(language) is None:
            raise CommandStageError(
                stage="input",
                detail="`--language` must be a non-empty value.",
            )
        cache = build_cache(_load_config(config_file))
        removed = cache.clear_language(language)
    except Exception as exc:
        exit_with_command_error("cache-clear", exc)

    typer.echo(f"Removed {removed} cached entr{'y' if removed == 1 else 'ies'} for `{language}`.")


@app.command("credentials")
def credentials_command(
    provider: Annotated[
        str,
        typer.Option("--provider", help="Provider whose API key is managed."),
    ],
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set-api-key",
            help="Prompt for API key with hidden input and store it securely.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option(
            "--clear-api-key",
            help="Clear stored API key from secure credential storage.",
        ),
    ] = False,
) -> None:
    """Manage securely stored provider credentials."""

    try:
        provider_id = normalize_provider_option(provider)
        if provider_id is None:
            raise CommandStageError(
                stage="credentials",
                detail="`--provider` must be a non-empty value.",
            )
        if set_api_key and clear_api_key:
            raise CommandStageError(
                stage="credentials",
                detail="`--set-api-key` and `--clear-api-key` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            )
    except CommandStageError as exc:
        exit_with_command_error("credentials", exc)

    credential_store = create_credential_store()
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                f"{provider_id} API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                CommandStageError(
                    stage="credentials",
                    detail="No API key entered.",
                    hint="Provide a non-empty API key when using `--set-api-key`.",
                ),
            )
        try:
            credential_store.set_api_key(provider_id, prompted_api_key)
        except Exception as exc:
            exit_with_command_error(
                "credentials",
                CommandStageError(
                    stage="credentials",
                    detail=f"Failed to store API key securely: {exc}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo("API key stored in secure credential storage.")
        return

    if clear_api_key:
        removed = credential_store.clear_api_key(provider_id)
        if removed:
            typer.echo("Stored API key cleared from secure credential storage.")
        else:
            typer.echo("No stored API key found in secure credential storage.")
        return

    availability = "available" if credential_store.is_available() else "unavailable"
    has_stored_key = credential_store.get_api_key(provider_id) is not None
    status = "present" if has_stored_key else "not set"
    typer.echo(f"Secure credential storage: {availability}")
    typer.echo(f"Stored {provider_id} API key: {status}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
