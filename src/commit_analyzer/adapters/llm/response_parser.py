"""Parse model responses into commit analyses.

Models are asked for a fenced ```json block, but often answer in prose or
markdown instead. Parsing therefore runs in two tiers: strict JSON first,
then heuristic extraction from natural language.
"""

import json
import re
from typing import Optional

from commit_analyzer.core.entities import MAX_SUMMARY_LENGTH, Analysis, Category
from commit_analyzer.errors import ParseError, ValidationError

DEFAULT_SUMMARY = "Code changes"
DEFAULT_DESCRIPTION = "This commit contains code changes."

_CATEGORIES = "|".join(Category.values())

_JSON_BLOCK_RE = re.compile(r"```json\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)

_CATEGORY_PATTERNS = [
    re.compile(rf"\*\*?Category\*\*?:?\s*\*{{0,2}}({_CATEGORIES})\b", re.IGNORECASE),
    re.compile(rf"Category:\s*\*{{0,2}}({_CATEGORIES})\b", re.IGNORECASE),
    re.compile(rf"should be categori[sz]ed as[:\s]*\*{{0,2}}[\"']?({_CATEGORIES})\b", re.IGNORECASE),
    re.compile(rf"\*\*({_CATEGORIES})\*\*", re.IGNORECASE),
    re.compile(rf"\b({_CATEGORIES})\s+commit\b", re.IGNORECASE),
]

_SUMMARY_RE = re.compile(r"\*{0,2}Summary(?:\*{0,2}:|:\*{0,2})[ \t]*([^\n\r]+)", re.IGNORECASE)
_DESCRIPTION_RE = re.compile(
    r"\*{0,2}Description(?:\*{0,2}:|:\*{0,2})\s*(.+?)(?=\n\s*\n|\n\*\*|\n---|\n#|\Z)",
    re.IGNORECASE | re.DOTALL,
)
_ACTION_WORDS = ("fix", "add", "refactor", "update", "implement")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_MARKDOWN_NOISE_RE = re.compile(r"[*\"`>]")


def parse_response(response: str) -> Analysis:
    """Parse a model response, falling back to natural-language extraction."""
    try:
        return parse_json_response(response)
    except ParseError:
        return parse_natural_language_response(response)


def parse_json_response(response: str) -> Analysis:
    """Parse the fenced JSON block the prompt asks for."""
    match = _JSON_BLOCK_RE.search(response)
    if not match:
        raise ParseError("No JSON block found in response", response)

    json_text = fix_json(match.group(1).strip())
    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in response: {e}", response) from e

    if not isinstance(parsed, dict):
        raise ParseError("JSON block is not an object", response)

    category = parsed.get("category")
    summary = parsed.get("summary")
    description = parsed.get("description")

    if not isinstance(summary, str) or not isinstance(description, str):
        raise ParseError("Missing required fields in response", response)
    if not summary.strip() or not description.strip():
        raise ParseError("Missing required fields in response", response)

    description = description.strip()
    try:
        return Analysis(
            category=Category.parse(category),
            summary=summary.strip()[:MAX_SUMMARY_LENGTH],
            description=description if len(description) >= 10 else DEFAULT_DESCRIPTION,
        )
    except ValidationError as e:
        raise ParseError(e.message, response) from e


def parse_natural_language_response(response: str) -> Analysis:
    """Extract category, summary and description from free-form text."""
    category = extract_category(response)
    if category is None:
        raise ParseError("Could not extract valid category from response", response)

    summary = _clean(extract_summary(response))[:MAX_SUMMARY_LENGTH].strip()
    description = _clean(extract_description(response))

    try:
        return Analysis(
            category=category,
            summary=summary or DEFAULT_SUMMARY,
            description=description if len(description) >= 10 else DEFAULT_DESCRIPTION,
        )
    except ValidationError as e:
        raise ParseError(e.message, response) from e


def extract_category(response: str) -> Optional[Category]:
    for pattern in _CATEGORY_PATTERNS:
        match = pattern.search(response)
        if match:
            return Category.parse(match.group(1))
    return None


def extract_summary(response: str) -> str:
    match = _SUMMARY_RE.search(response)
    if match and _clean(match.group(1)):
        return match.group(1).strip()

    for line in response.splitlines():
        lowered = line.lower()
        if line.strip() and any(word in lowered for word in _ACTION_WORDS):
            return line.strip()

    return DEFAULT_SUMMARY


def extract_description(response: str) -> str:
    match = _DESCRIPTION_RE.search(response)
    if match and _clean(match.group(1)):
        return match.group(1).strip()

    for sentence in _SENTENCE_SPLIT_RE.split(response):
        if len(sentence.strip()) > 20:
            return sentence.strip()

    return DEFAULT_DESCRIPTION


def fix_json(text: str) -> str:
    """Remove trailing commas before } or ]."""
    return re.sub(r",(\s*[}\]])", r"\1", text)


def _clean(text: str) -> str:
    text = _MARKDOWN_NOISE_RE.sub("", text)
    return re.sub(r"\s+", " ", text).strip()
