"""
Lenient parsing of JSON produced by LLMs.
"""
from typing import Any, Dict, List, Sequence
import json
import logging
import re

from ..exceptions import ParseError

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r"[\u0000-\u001F\u007F-\u009F]")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")

# Values may be quoted with either quote style but never contain one
_VALUE = r"""["']([^"']+)["']"""
_LOOSE_VALUE = r"""["']([^"',}]+)["']"""


def parse_json_response(content: str) -> Any:
    """
    Parse JSON from an LLM response, repairing the usual damage first.

    Repairs applied, in order: markdown fences, control characters and
    line breaks, whitespace runs, single quotes (every ``'`` becomes ``"``,
    so apostrophes inside values are not preserved), trailing commas, and
    missing closing brackets/braces of truncated output.

    Args:
        content: Raw completion text

    Returns:
        The decoded JSON value

    Raises:
        ParseError: If the repaired text is still not valid JSON
    """
    json_content = (content or "").strip()

    # Remove markdown code blocks if present
    if json_content.startswith("```json"):
        json_content = re.sub(r"```json\n?", "", json_content)
        json_content = re.sub(r"```\n?", "", json_content)
    elif json_content.startswith("```"):
        json_content = re.sub(r"```\n?", "", json_content)

    json_content = re.sub(r"[\r\n\t]+", " ", json_content)
    json_content = _CONTROL_CHARS.sub("", json_content)
    json_content = re.sub(r"\s+", " ", json_content).strip()

    json_content = json_content.replace("'", '"')
    json_content = _TRAILING_COMMA.sub(r"\1", json_content)

    open_brackets = json_content.count("[") - json_content.count("]")
    open_braces = json_content.count("{") - json_content.count("}")
    if open_brackets > 0:
        json_content += "]" * open_brackets
    if open_braces > 0:
        json_content += "}" * open_braces

    try:
        return json.loads(json_content)
    except json.JSONDecodeError as e:
        raise ParseError(f"Could not parse LLM response as JSON: {e}", content=content) from e


def _strict_pattern(fields: Sequence[str]) -> re.Pattern:
    pairs = [rf"""["']{re.escape(name)}["']\s*:\s*{_VALUE}""" for name in fields]
    return re.compile(r"\s*,\s*".join(pairs))


def _loose_pattern(fields: Sequence[str]) -> re.Pattern:
    pairs = [rf"""["']?{re.escape(name)}["']?\s*:\s*{_LOOSE_VALUE}""" for name in fields]
    return re.compile(r"\{[^}]*" + r"[^}]*".join(pairs) + r"[^}]*\}")


def scan_key_value_records(content: str, fields: Sequence[str]) -> List[Dict[str, str]]:
    """
    Pull records out of text that is not valid JSON.

    Finds objects whose ``fields`` appear as quoted key/value pairs in the
    given order. Two passes: adjacent pairs (``"name":"x","type":"y"``),
    then any object containing the keys in order with other content in
    between. Records from the second pass are trimmed and skipped when
    already found.

    Args:
        content: Raw completion text
        fields: Keys to collect, e.g. ``("name", "type")``

    Returns:
        One dict per record, keyed by ``fields``
    """
    records: List[Dict[str, str]] = []

    for match in _strict_pattern(fields).finditer(content):
        records.append(dict(zip(fields, match.groups())))

    for match in _loose_pattern(fields).finditer(content):
        record = dict(zip(fields, (value.strip() for value in match.groups())))
        if record not in records:
            records.append(record)

    logger.debug(f"Scanned {len(records)} records for fields {tuple(fields)}")
    return records
