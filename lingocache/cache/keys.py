"""Cache key construction for translated content."""

from __future__ import annotations

from dataclasses import dataclass

from ..models.datatypes import ContentKind, ContentUnit
from ..parsing import normalize_language


@dataclass(frozen=True, slots=True)
class CacheKey:
    """Identity of one cache slot: content identity, target language, content kind.

    Attributes:
        content_id: Kind-prefixed content identity (`puzzle:42`, `scenario:...`).
        language: Case-folded target language.
        kind: Content kind, which selects the cache tier.
    """

    content_id: str
    language: str
    kind: ContentKind

    @classmethod
    def for_unit(cls, unit: ContentUnit, language: str) -> CacheKey:
        """Build the cache key for a content unit and target language."""

        normalized_language = normalize_language(language)
        if normalized_language is None:
            raise ValueError("Cache keys require a non-empty target language.")
        return cls(content_id=unit.content_id, language=normalized_language, kind=unit.kind)

    def as_token(self) -> str:
        """Return a compact printable token for logs."""

        return f"{self.content_id}@{self.language}"
