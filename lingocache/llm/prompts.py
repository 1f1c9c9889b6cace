"""Prompt template library for translation requests.

Responsibilities:
- Centralize one fixed prompt template per content kind.
- Embed the target language and a serialized content snapshot deterministically.
"""

from __future__ import annotations

from ..models.datatypes import ContentKind, ContentUnit


class PromptLibrary:
    """Build prompt strings for supported content kinds."""

    def __init__(self, source_language: str = "English") -> None:
        """Initialize templates for content authored in `source_language`."""

        self.source_language = source_language

    def render(self, unit: ContentUnit, target_language: str) -> str:
        """Return the prompt for one content unit and target language."""

        if unit.kind is ContentKind.PUZZLE:
            return self.puzzle_prompt(unit.prompt_snapshot(), target_language)
        if unit.kind is ContentKind.SCENARIO:
            return self.scenario_prompt(unit.prompt_snapshot(), target_language)
        return self.feedback_prompt(
            unit.prompt_snapshot(),
            target_language,
            structured=not unit.expects_plain_text,
        )

    def puzzle_prompt(self, content: str, target_language: str) -> str:
        """Return the puzzle translation prompt."""

        return (
            "You are a professional translator. Translate the following content from "
            f"{self.source_language} to {target_language}.\n\n"
            "IMPORTANT RULES:\n"
            "1. Maintain the exact meaning and nuance\n"
            "2. Keep the same tone (educational, puzzle-like)\n"
            "3. Preserve any technical terms that are better kept in "
            f"{self.source_language}\n"
            "4. For JSON arrays, translate each string while keeping the array structure\n"
            "5. Return ONLY valid JSON with the translated fields\n\n"
            "Content to translate:\n"
            f"{content}\n\n"
            "Return as JSON:\n"
            "{\n"
            '  "title": "translated title",\n'
            '  "question": "translated question",\n'
            '  "idealAnswer": "translated ideal answer",\n'
            '  "keyPrinciples": ["translated principle 1", "translated principle 2", ...]\n'
            "}"
        )

    def scenario_prompt(self, content: str, target_language: str) -> str:
        """Return the training-scenario translation prompt."""

        return (
            "You are a professional translator. Translate the following cognitive training "
            f"scenario from {self.source_language} to {target_language}.\n\n"
            "IMPORTANT RULES:\n"
            "1. Maintain the exact meaning, including any statistical or causal wording\n"
            "2. Keep the same analytical, investigative tone\n"
            "3. Translate every string inside `evidence` and `stakeholders`, keeping list order\n"
            "4. Do not add, drop, or rename keys\n"
            "5. Return ONLY valid JSON with the translated fields\n\n"
            "Scenario to translate:\n"
            f"{content}"
        )

    def feedback_prompt(self, feedback: str, target_language: str, *, structured: bool) -> str:
        """Return the grader-feedback translation prompt."""

        if structured:
            answer_shape = (
                "Return ONLY valid JSON with the same keys, translating string values."
            )
        else:
            answer_shape = "Return the translated feedback as plain text."
        return (
            f"Translate the following grading feedback from {self.source_language} to "
            f"{target_language}.\n"
            "Keep the same tone (constructive, educational). "
            "Preserve any technical terms if needed.\n\n"
            "Feedback:\n"
            f"{feedback}\n\n"
            f"{answer_shape}"
        )
