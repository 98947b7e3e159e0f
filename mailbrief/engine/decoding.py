"""
Decoding of raw model output into typed results.

Both providers answer task-extraction and related-term prompts with free
text that is supposed to contain a JSON array. Models routinely wrap the
array in prose or code fences, so the array is cut out before parsing.
"""

import json
import re
from datetime import datetime
from typing import Any, List, Optional

from dateutil import parser
from dateutil.relativedelta import relativedelta

from mailbrief.data.models import TaskExtraction, TaskPriority

MAX_RELATED_TERMS = 10

_RELATIVE_DATES = (
    (re.compile(r"\btomorrow\b"), relativedelta(days=1)),
    (re.compile(r"\bnext week\b"), relativedelta(weeks=1)),
    (re.compile(r"\bnext month\b"), relativedelta(months=1)),
)
_BULLET = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def extract_json_array(text: str) -> str:
    """Return the slice from the first '[' to the last ']', or the stripped text if there is none."""
    text = (text or "").strip()
    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end > start:
        return text[start:end + 1]
    return text


def parse_due_date(value: Any, now: Optional[datetime] = None) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    value = value.strip()
    try:
        return parser.isoparse(value)
    except (ValueError, OverflowError):
        pass

    now = now or datetime.now()
    lowered = value.lower()
    for pattern, delta in _RELATIVE_DATES:
        if pattern.search(lowered):
            return now + delta
    return None


def _parse_priority(value: Any) -> TaskPriority:
    try:
        return TaskPriority(str(value).strip().lower())
    except ValueError:
        return TaskPriority.MEDIUM


def parse_tasks(response_text: str, now: Optional[datetime] = None) -> List[TaskExtraction]:
    """
    Parse a task-extraction response.

    Raises:
        ValueError: if the response holds no parseable JSON array
    """
    raw = extract_json_array(response_text)
    try:
        items = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"failed to parse task JSON: {e}") from e
    if not isinstance(items, list):
        raise ValueError("failed to parse task JSON: expected an array")

    tasks = []
    for item in items:
        if not isinstance(item, dict):
            continue
        title = str(item.get("title") or "").strip()
        if not title:
            continue
        description = item.get("description")
        tasks.append(TaskExtraction(
            title=title,
            description=str(description).strip() if description else None,
            due_date=parse_due_date(item.get("due_date"), now=now),
            priority=_parse_priority(item.get("priority") or TaskPriority.MEDIUM.value),
        ))
    return tasks


def parse_terms(response_text: str, term: str) -> List[str]:
    """Parse related search terms; JSON array preferred, comma/newline list accepted."""
    raw = extract_json_array(response_text)
    candidates: List[str]
    try:
        parsed = json.loads(raw)
        candidates = [str(c) for c in parsed] if isinstance(parsed, list) else []
    except json.JSONDecodeError:
        candidates = re.split(r"[,\n]", response_text or "")

    seen = {term.strip().lower()}
    terms = []
    for candidate in candidates:
        cleaned = _BULLET.sub("", candidate).strip().strip("\"'").strip()
        key = cleaned.lower()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        terms.append(cleaned)
        if len(terms) >= MAX_RELATED_TERMS:
            break
    return terms
