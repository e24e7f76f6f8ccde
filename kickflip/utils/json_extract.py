"""Extract the first balanced JSON value from free-form model output.

LLMs asked for "JSON only" still wrap it in prose, code fences, or a
reasoning preamble.  Every consumer of model output (the Formatter, live
discovery, the batch crawler) goes through :func:`extract_json` so the
recovery rules live in one place:

1. ``<think>...</think>`` blocks are dropped.
2. The whole (stripped) text is tried first.
3. Otherwise every ``{`` / ``[`` position is tried in order with
   :meth:`json.JSONDecoder.raw_decode`, which consumes exactly one balanced
   value and ignores whatever trails it.  The first value matching
   ``expect`` wins.

Failure raises :class:`~kickflip.utils.errors.JSONExtractionError`; callers
catch it and fall back to their own defaults.
"""

from __future__ import annotations

import json
import re
from typing import Any

from kickflip.utils.errors import JSONExtractionError

_THINK_BLOCK_RE = re.compile(r"<think>.*?</think>", flags=re.DOTALL | re.IGNORECASE)
_FENCE_RE = re.compile(r"```(?:json)?", flags=re.IGNORECASE)

_decoder = json.JSONDecoder()


def _clean(text: str) -> str:
    cleaned = _THINK_BLOCK_RE.sub("", text)
    # An unterminated reasoning block: keep only what follows the closing tag.
    marker = cleaned.rfind("</think>")
    if marker != -1:
        cleaned = cleaned[marker + len("</think>") :]
    return _FENCE_RE.sub("", cleaned).strip()


def _end_of_opener_run(text: str, start: int) -> int:
    """Index just past the run of ``[``, ``{`` and whitespace at *start*."""
    end = start
    while end < len(text) and (text[end] in "[{" or text[end].isspace()):
        end += 1
    return end


def _matches(value: Any, expect: type | tuple[type, ...] | None) -> bool:
    if expect is None:
        return isinstance(value, (dict, list))
    return isinstance(value, expect)


def extract_json(
    text: str | None,
    expect: type | tuple[type, ...] | None = None,
) -> Any:
    """Return the first JSON object or array embedded in *text*.

    Parameters
    ----------
    text:
        Raw model output.  ``None`` and empty strings fail immediately.
    expect:
        Optional type (or tuple of types) the value must be, e.g. ``dict``
        for ``{"text": ..., "events": [...]}`` payloads or ``list`` for a
        bare array of events.  Values of other types are skipped and the
        scan continues.

    Raises
    ------
    JSONExtractionError
        If no balanced JSON value of the expected type is found.
    """
    if not text or not text.strip():
        raise JSONExtractionError("Model output is empty")

    cleaned = _clean(text)

    try:
        whole = json.loads(cleaned)
    except (ValueError, RecursionError):
        pass
    else:
        if _matches(whole, expect):
            return whole

    resume_at = 0
    for match in re.finditer(r"[\[{]", cleaned):
        start = match.start()
        if start < resume_at:
            continue
        try:
            value, _end = _decoder.raw_decode(cleaned, start)
        except ValueError:
            continue
        except RecursionError:
            # Later openers in this run only start fragments of the same value.
            resume_at = _end_of_opener_run(cleaned, start)
            continue
        if _matches(value, expect):
            return value

    raise JSONExtractionError(
        f"No JSON value found in model output ({len(text)} chars)"
    )
