"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
translation result payloads, and cache statistics.
"""

from __future__ import annotations

import json
from typing import Any, NoReturn

import typer

from .errors import CommandStageError
from .models.datatypes import CacheStats, TranslationResult


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, CommandStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_json_payload(payload: Any) -> None:
    """Print a deterministic, human-readable JSON document."""

    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


def echo_translation_result(result: TranslationResult) -> None:
    """Print one translation result payload, including its fallback marker."""

    echo_json_payload(result.as_payload())


def echo_batch_results(results: list[TranslationResult]) -> None:
    """Print batch results in input order with a fallback count on stderr."""

    echo_json_payload([result.as_payload() for result in results])
    fallback_count = sum(1 for result in results if result.is_fallback)
    if fallback_count:
        typer.secho(
            f"{fallback_count} of {len(results)} item(s) fell back to original content.",
            fg=typer.colors.YELLOW,
            err=True,
        )


def echo_cache_stats(stats: CacheStats) -> None:
    """Print cache counts per language and the volatile tier size."""

    if not stats.counts_by_language:
        typer.echo("Durable cache: empty")
    for language, count in sorted(stats.counts_by_language.items()):
        typer.echo(f"{language}: {count}")
    typer.echo(f"Volatile tier entries: {stats.volatile_tier_size}")
