"""Extraction of translated payloads from free-text upstream responses.

Upstream models often wrap their answer in a Markdown code fence. The parser
locates at most one fenced block, strips the fence markers and a known
language tag (`json`, `text`, `md`, ...), and otherwise uses the whole response.
"""

from __future__ import annotations

import json
import re
from typing import Any

from ..errors import ParseError

_FENCE_MARKER = "```"
_FENCE_LANGUAGE_TAGS = ("json", "text", "txt", "plaintext", "markdown", "md")
_FENCED_BLOCK_PATTERN = re.compile(
    r"```(?:(?:" + "|".join(_FENCE_LANGUAGE_TAGS) + r")[ \t]*(?:\r?\n|(?=[{\[]))|[ \t]*\r?\n)?"
    r"(?P<body>.*?)```",
    re.DOTALL | re.IGNORECASE,
)


def extract_fenced_payload(response: str) -> str:
    """Return the stripped fenced block body, or the whole stripped response.

    Raises:
        ParseError: If the response is empty, contains more than one fenced
            block, or has an unterminated fence.
    """

    if not isinstance(response, str):
        raise ParseError("Upstream response must be text.")

    blocks = list(_FENCED_BLOCK_PATTERN.finditer(response))
    if len(blocks) > 1:
        raise ParseError("Upstream response contains more than one fenced block.")
    if blocks:
        remainder = response[: blocks[0].start()] + response[blocks[0].end() :]
        if _FENCE_MARKER in remainder:
            raise ParseError("Upstream response contains an unterminated fenced block.")
        payload = blocks[0].group("body")
    else:
        if _FENCE_MARKER in response:
            raise ParseError("Upstream response contains an unterminated fenced block.")
        payload = response

    stripped = payload.strip()
    if not stripped:
        raise ParseError("Upstream response payload is empty.")
    return stripped


def parse_json_value(payload: str) -> Any:
    """Decode a JSON payload, mapping decode failures to `ParseError`."""

    try:
        return json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Upstream payload is not valid JSON: {exc.msg}.") from exc
