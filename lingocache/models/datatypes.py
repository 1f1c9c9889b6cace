"""Core datatypes shared across lingocache modules.

Responsibilities:
- Represent original-language content units and their translated counterparts.
- Define the wire shape exchanged with prompts, upstream responses, and cache rows.
- Provide merge semantics that keep original values for missing translated fields.

Key types:
- `PuzzleFields`, `TrainingScenario`, `FreeTextFeedback` (content units),
  `TranslationResult`, and `CacheStats`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import json
from typing import Any, ClassVar, Mapping, Union

from ..errors import ParseError
from .identity import stable_fingerprint

MAX_SCENARIO_LIST_ITEMS = 20
SCENARIO_FINGERPRINT_WIDTH = 8
_SCENARIO_BRIEFING_IDENTITY_CHARS = 50


class ContentKind(str, Enum):
    """Content kinds with distinct prompts, field shapes, and cache tiers."""

    PUZZLE = "puzzle"
    FEEDBACK = "feedback"
    SCENARIO = "scenario"


def _require_text(value: object, field_name: str) -> str:
    """Return a non-blank string value or raise `ValueError`."""

    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"`{field_name}` must be a non-empty string.")
    return value


def _optional_text(value: object, field_name: str) -> str:
    """Return a string value, treating `None` as empty."""

    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"`{field_name}` must be a string.")
    return value


def _text_tuple(value: object, field_name: str) -> tuple[str, ...]:
    """Return a tuple of strings from a list-like value."""

    if value is None:
        return ()
    if not isinstance(value, list | tuple):
        raise ValueError(f"`{field_name}` must be a list of strings.")
    if not all(isinstance(item, str) for item in value):
        raise ValueError(f"`{field_name}` must contain only strings.")
    return tuple(value)


def _overlay_text(original: str, translated: object) -> str:
    """Prefer a non-blank translated string, otherwise keep the original value."""

    if isinstance(translated, str) and translated.strip():
        return translated
    return original


def _overlay_list(original: tuple[str, ...], translated: object) -> tuple[str, ...]:
    """Prefer a non-empty translated string list, otherwise keep the original list."""

    if (
        isinstance(translated, list | tuple)
        and translated
        and all(isinstance(item, str) for item in translated)
    ):
        return tuple(translated)
    return original


def _expect_translation_object(decoded: object, kind: ContentKind) -> Mapping[str, Any]:
    """Require a decoded upstream payload to be a JSON object."""

    if not isinstance(decoded, Mapping):
        raise ParseError(f"Expected a JSON object for {kind.value} translation.")
    return decoded


def _validated_translation(
    decoded: Mapping[str, Any],
    *,
    kind: ContentKind,
    text_fields: tuple[str, ...],
    list_fields: tuple[str, ...],
    primary_field: str,
) -> dict[str, Any]:
    """Validate upstream field types and keep only known wire fields."""

    validated: dict[str, Any] = {}
    for name in text_fields:
        value = decoded.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ParseError(f"{kind.value} translation field `{name}` must be a string.")
        validated[name] = value
    for name in list_fields:
        value = decoded.get(name)
        if value is None:
            continue
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ParseError(
                f"{kind.value} translation field `{name}` must be a list of strings."
            )
        validated[name] = list(value)

    primary = validated.get(primary_field)
    if not isinstance(primary, str) or not primary.strip():
        raise ParseError(f"{kind.value} translation is missing `{primary_field}`.")
    return validated


@dataclass(frozen=True, slots=True)
class PuzzleFields:
    """Translatable fields of one puzzle.

    Attributes:
        puzzle_id: Stable external puzzle identifier.
        title: Puzzle title.
        question: Puzzle question text (primary text field).
        ideal_answer: Reference answer text.
        key_principles: Ordered key principles.
    """

    kind: ClassVar[ContentKind] = ContentKind.PUZZLE
    expects_plain_text: ClassVar[bool] = False

    puzzle_id: str
    title: str
    question: str
    ideal_answer: str = ""
    key_principles: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate required fields."""

        _require_text(self.puzzle_id, "puzzle_id")
        _require_text(self.question, "question")

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> PuzzleFields:
        """Build puzzle fields from a camelCase content-source record."""

        raw_id = payload.get("puzzleId", payload.get("id"))
        if raw_id is None or isinstance(raw_id, bool):
            raise ValueError("Puzzle record requires `puzzleId`.")
        return cls(
            puzzle_id=str(raw_id).strip(),
            title=_optional_text(payload.get("title"), "title"),
            question=_require_text(payload.get("question"), "question"),
            ideal_answer=_optional_text(payload.get("idealAnswer"), "idealAnswer"),
            key_principles=_text_tuple(payload.get("keyPrinciples"), "keyPrinciples"),
        )

    @property
    def content_id(self) -> str:
        """Return the durable content identity for this puzzle."""

        return f"puzzle:{self.puzzle_id.strip()}"

    @property
    def primary_text(self) -> str:
        """Return the field compared by the self-healing cache check."""

        return self.question

    @staticmethod
    def primary_text_of(payload: Mapping[str, Any]) -> str | None:
        """Return the primary text field from a translated wire mapping."""

        value = payload.get("question")
        return value if isinstance(value, str) else None

    def to_payload(self) -> dict[str, Any]:
        """Return the camelCase wire shape of these fields."""

        return {
            "title": self.title,
            "question": self.question,
            "idealAnswer": self.ideal_answer,
            "keyPrinciples": list(self.key_principles),
        }

    def prompt_snapshot(self) -> str:
        """Return the serialized content embedded in translation prompts."""

        return json.dumps(self.to_payload(), ensure_ascii=False, indent=2)

    def validate_translation(self, decoded: object) -> dict[str, Any]:
        """Validate a decoded upstream payload against the puzzle wire shape."""

        return _validated_translation(
            _expect_translation_object(decoded, self.kind),
            kind=self.kind,
            text_fields=("title", "question", "idealAnswer"),
            list_fields=("keyPrinciples",),
            primary_field="question",
        )

    def merged_with(self, translated: Mapping[str, Any]) -> PuzzleFields:
        """Overlay translated fields, keeping originals for missing values."""

        return PuzzleFields(
            puzzle_id=self.puzzle_id,
            title=_overlay_text(self.title, translated.get("title")),
            question=_overlay_text(self.question, translated.get("question")),
            ideal_answer=_overlay_text(self.ideal_answer, translated.get("idealAnswer")),
            key_principles=_overlay_list(self.key_principles, translated.get("keyPrinciples")),
        )


_SCENARIO_TEXT_FIELDS = ("title", "briefing", "correctInsight", "claim", "outcome", "context")
_SCENARIO_LIST_FIELDS = ("evidence", "stakeholders")
_SCENARIO_KNOWN_KEYS = frozenset(
    {"type", "domain", *_SCENARIO_TEXT_FIELDS, *_SCENARIO_LIST_FIELDS}
)


@dataclass(frozen=True, slots=True)
class TrainingScenario:
    """Translatable fields of one cognitive training scenario.

    Scenarios have no natural external identifier, so identity is a fingerprint
    over `title`, the leading part of `briefing`, and `correct_insight`.
    Non-translatable scenario data (data points, budgets, difficulty) rides in
    `extra` and is returned unchanged by merges.
    """

    kind: ClassVar[ContentKind] = ContentKind.SCENARIO
    expects_plain_text: ClassVar[bool] = False

    scenario_type: str
    title: str
    briefing: str
    correct_insight: str = ""
    claim: str = ""
    outcome: str = ""
    context: str = ""
    evidence: tuple[str, ...] = ()
    stakeholders: tuple[str, ...] = ()
    domain: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate required fields and list bounds."""

        _require_text(self.scenario_type, "type")
        _require_text(self.title, "title")
        _require_text(self.briefing, "briefing")
        for name, values in (("evidence", self.evidence), ("stakeholders", self.stakeholders)):
            if len(values) > MAX_SCENARIO_LIST_ITEMS:
                raise ValueError(
                    f"`{name}` exceeds the limit of {MAX_SCENARIO_LIST_ITEMS} items."
                )

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> TrainingScenario:
        """Build a scenario from a camelCase content-source record."""

        domain = payload.get("domain")
        return cls(
            scenario_type=_require_text(payload.get("type"), "type"),
            title=_require_text(payload.get("title"), "title"),
            briefing=_require_text(payload.get("briefing"), "briefing"),
            correct_insight=_optional_text(payload.get("correctInsight"), "correctInsight"),
            claim=_optional_text(payload.get("claim"), "claim"),
            outcome=_optional_text(payload.get("outcome"), "outcome"),
            context=_optional_text(payload.get("context"), "context"),
            evidence=_text_tuple(payload.get("evidence"), "evidence"),
            stakeholders=_text_tuple(payload.get("stakeholders"), "stakeholders"),
            domain=domain if isinstance(domain, str) else None,
            extra={
                key: value for key, value in payload.items() if key not in _SCENARIO_KNOWN_KEYS
            },
        )

    @property
    def fingerprint(self) -> str:
        """Return the truncated content fingerprint used as scenario identity."""

        return stable_fingerprint(
            {
                "title": self.title,
                "briefing": self.briefing[:_SCENARIO_BRIEFING_IDENTITY_CHARS],
                "correctInsight": self.correct_insight,
            },
            width=SCENARIO_FINGERPRINT_WIDTH,
        )

    @property
    def content_id(self) -> str:
        """Return the durable content identity for this scenario."""

        return f"scenario:{self.scenario_type.strip()}:{self.fingerprint}"

    @property
    def primary_text(self) -> str:
        """Return the field compared by the self-healing cache check."""

        return self.briefing

    @staticmethod
    def primary_text_of(payload: Mapping[str, Any]) -> str | None:
        """Return the primary text field from a translated wire mapping."""

        value = payload.get("briefing")
        return value if isinstance(value, str) else None

    def to_payload(self) -> dict[str, Any]:
        """Return the full camelCase scenario record including untranslated data."""

        payload: dict[str, Any] = dict(self.extra)
        payload.update(
            {
                "type": self.scenario_type,
                "title": self.title,
                "briefing": self.briefing,
                "correctInsight": self.correct_insight,
                "claim": self.claim,
                "outcome": self.outcome,
                "context": self.context,
                "evidence": list(self.evidence),
                "stakeholders": list(self.stakeholders),
            }
        )
        if self.domain is not None:
            payload["domain"] = self.domain
        return payload

    def prompt_snapshot(self) -> str:
        """Return only the non-empty translatable fields as prompt JSON."""

        full = self.to_payload()
        snapshot = {
            name: full[name]
            for name in (*_SCENARIO_TEXT_FIELDS, *_SCENARIO_LIST_FIELDS)
            if full[name]
        }
        return json.dumps(snapshot, ensure_ascii=False, indent=2)

    def validate_translation(self, decoded: object) -> dict[str, Any]:
        """Validate a decoded upstream payload against the scenario wire shape."""

        validated = _validated_translation(
            _expect_translation_object(decoded, self.kind),
            kind=self.kind,
            text_fields=_SCENARIO_TEXT_FIELDS,
            list_fields=_SCENARIO_LIST_FIELDS,
            primary_field="briefing",
        )
        for name in _SCENARIO_LIST_FIELDS:
            if len(validated.get(name, ())) > MAX_SCENARIO_LIST_ITEMS:
                raise ParseError(f"scenario translation field `{name}` is too long.")
        return validated

    def merged_with(self, translated: Mapping[str, Any]) -> TrainingScenario:
        """Overlay translated fields, keeping originals for missing values."""

        return TrainingScenario(
            scenario_type=self.scenario_type,
            title=_overlay_text(self.title, translated.get("title")),
            briefing=_overlay_text(self.briefing, translated.get("briefing")),
            correct_insight=_overlay_text(self.correct_insight, translated.get("correctInsight")),
            claim=_overlay_text(self.claim, translated.get("claim")),
            outcome=_overlay_text(self.outcome, translated.get("outcome")),
            context=_overlay_text(self.context, translated.get("context")),
            evidence=_overlay_list(self.evidence, translated.get("evidence")),
            stakeholders=_overlay_list(self.stakeholders, translated.get("stakeholders")),
            domain=self.domain,
            extra=self.extra,
        )


@dataclass(frozen=True, slots=True)
class FreeTextFeedback:
    """Grader feedback, either opaque text or a structured JSON object."""

    kind: ClassVar[ContentKind] = ContentKind.FEEDBACK

    body: str | Mapping[str, Any]

    def __post_init__(self) -> None:
        """Validate the feedback body shape."""

        if isinstance(self.body, str):
            _require_text(self.body, "feedback")
        elif not isinstance(self.body, Mapping) or not self.body:
            raise ValueError("`feedback` must be a non-empty string or object.")
        else:
            object.__setattr__(self, "body", dict(self.body))

    @property
    def expects_plain_text(self) -> bool:
        """Return whether upstream should answer with plain text instead of JSON."""

        return isinstance(self.body, str)

    @property
    def content_id(self) -> str:
        """Return a full-body content fingerprint identity."""

        return f"feedback:{stable_fingerprint({'feedback': self.body})}"

    @property
    def primary_text(self) -> str | None:
        """Return the feedback text for string feedback."""

        return self.body if isinstance(self.body, str) else None

    @staticmethod
    def primary_text_of(payload: Mapping[str, Any]) -> str | None:
        """Return the translated feedback text from a cached wire mapping."""

        value = payload.get("feedback")
        return value if isinstance(value, str) else None

    def to_payload(self) -> dict[str, Any]:
        """Return the wire shape of this feedback."""

        body = self.body if isinstance(self.body, str) else dict(self.body)
        return {"feedback": body}

    def prompt_snapshot(self) -> str:
        """Return the feedback serialized for prompt embedding."""

        if isinstance(self.body, str):
            return self.body
        return json.dumps(dict(self.body), ensure_ascii=False, indent=2)

    def validate_translation(self, decoded: object) -> dict[str, Any]:
        """Validate a decoded upstream payload against this feedback's shape."""

        if isinstance(self.body, str):
            if not isinstance(decoded, str) or not decoded.strip():
                raise ParseError("feedback translation is empty.")
            return {"feedback": decoded.strip()}
        if not isinstance(decoded, Mapping) or not decoded:
            raise ParseError("Expected a non-empty JSON object for feedback translation.")
        return {"feedback": dict(decoded)}

    def merged_with(self, translated: Mapping[str, Any]) -> FreeTextFeedback:
        """Overlay translated feedback, keeping original text or keys when missing."""

        value = translated.get("feedback")
        if isinstance(self.body, str):
            return FreeTextFeedback(body=_overlay_text(self.body, value))

        merged = dict(self.body)
        if isinstance(value, Mapping):
            for key, original in self.body.items():
                candidate = value.get(key)
                if isinstance(original, str):
                    merged[key] = _overlay_text(original, candidate)
                elif isinstance(original, list):
                    if isinstance(candidate, list) and candidate:
                        merged[key] = list(candidate)
                elif candidate is not None and type(candidate) is type(original):
                    merged[key] = candidate
        return FreeTextFeedback(body=merged)


ContentUnit = Union[PuzzleFields, TrainingScenario, FreeTextFeedback]


@dataclass(frozen=True, slots=True)
class TranslationResult:
    """Outcome of one translation request.

    A result is either a genuine translation or a fallback carrying the
    original fields. Fallbacks are never written to any cache tier.

    Attributes:
        fields: Translated (or original, for fallbacks) content unit.
        is_fallback: Whether the result degraded to original-language content.
        reason: Short failure description for fallbacks.
    """

    fields: ContentUnit
    is_fallback: bool = False
    reason: str | None = None

    @classmethod
    def translated(cls, fields: ContentUnit) -> TranslationResult:
        """Build a successful translation result."""

        return cls(fields=fields)

    @classmethod
    def fallback(cls, fields: ContentUnit, reason: str) -> TranslationResult:
        """Build a fallback result carrying original-language fields."""

        return cls(fields=fields, is_fallback=True, reason=reason)

    def as_payload(self) -> dict[str, Any]:
        """Return wire fields plus an explicit `fallback` marker."""

        payload = self.fields.to_payload()
        payload["fallback"] = self.is_fallback
        if self.is_fallback and self.reason:
            payload["fallbackReason"] = self.reason
        return payload


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Observability snapshot of cache tiers.

    Attributes:
        counts_by_language: Durable-tier row counts keyed by normalized language.
        volatile_tier_size: Number of entries held in the volatile tier.
    """

    counts_by_language: Mapping[str, int]
    volatile_tier_size: int

    def as_payload(self) -> dict[str, Any]:
        """Return a JSON-serializable stats mapping."""

        return {
            "countsByLanguage": dict(sorted(self.counts_by_language.items())),
            "volatileTierSize": self.volatile_tier_size,
        }
