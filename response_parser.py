#!/usr/bin/env python
"""
Response parsing for Task Master
Extracts JSON from raw model text and normalizes tasks, subtasks and complexity reports
"""

import json
import math
import re
from typing import Any, Dict, List, Optional

from errors import MalformedJson, NoJsonFound, ShapeMismatch
from ui_utils import log

BRACKETS = {
    "object": ("{", "}"),
    "array": ("[", "]"),
}

_FENCE_TEMPLATE = r"```%s\s*(%s.*?%s)\s*```"

# json-tagged fences are searched before untagged ones
_FENCED_PATTERNS = {
    kind: [
        re.compile(_FENCE_TEMPLATE % (tag, re.escape(opening), re.escape(closing)), re.DOTALL | re.IGNORECASE)
        for tag in ("json", "")
    ]
    for kind, (opening, closing) in BRACKETS.items()
}

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")

FALLBACK_SUBTASK_DESCRIPTION = "Auto-generated fallback subtask"


def _widest_span(text: str, expect: str) -> Optional[str]:
    opening, closing = BRACKETS[expect]
    start = text.find(opening)
    end = text.rfind(closing)
    if start == -1 or end == -1 or end < start:
        return None
    return text[start:end + 1]


def extract_json(text: str, expect: str = "object") -> str:
    """Return the substring of ``text`` most likely to be the JSON payload.

    A fenced block whose content starts and ends with the expected brackets
    wins, a ``json``-tagged fence ahead of an untagged one; otherwise the
    widest span between the first opening and the last closing bracket is
    returned.
    """
    if expect not in BRACKETS:
        raise ValueError(f"Unknown JSON kind: {expect}")
    if not text:
        raise NoJsonFound("Empty response from the model")

    for pattern in _FENCED_PATTERNS[expect]:
        fenced = pattern.search(text)
        if fenced:
            return fenced.group(1)

    candidate = _widest_span(text, expect)
    if candidate is None:
        raise NoJsonFound(f"No valid JSON {expect} found in the response")
    return candidate


def parse_json(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedJson(f"Error parsing JSON: {e}") from e


def cleanup_json_response(content: str, expect: str = "object") -> str:
    """Local, model-free cleanup: strip fences, widen to the bracket span, drop trailing commas"""
    fenced = re.search(r"```(?:json)?\s*(.*?)```", content, re.DOTALL | re.IGNORECASE)
    if fenced:
        content = fenced.group(1)

    span = _widest_span(content, expect)
    if span is None:
        return content  # Can't find JSON markers
    return _TRAILING_COMMA.sub(r"\1", span)


def coerce_dependency(value: Any) -> Optional[int]:
    """Convert a dependency reference to a plain int, or None when it isn't one"""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) and value.is_integer() else None
    if isinstance(value, str):
        stripped = value.strip()
        try:
            return int(stripped)
        except ValueError:
            pass
        try:
            number = float(stripped)
        except ValueError:
            return None
        return int(number) if math.isfinite(number) and number.is_integer() else None
    return None


def coerce_dependencies(dependencies: Any) -> List[int]:
    if not isinstance(dependencies, list):
        return []
    coerced = (coerce_dependency(dep) for dep in dependencies)
    return [dep for dep in coerced if dep is not None]


def validate_tasks_payload(data: Any, num_tasks: int) -> Dict[str, Any]:
    """PRD parsing must produce ``{"tasks": [...], "metadata": {...}}``"""
    if not isinstance(data, dict):
        raise ShapeMismatch("Response is not a JSON object")
    if not isinstance(data.get('tasks'), list):
        raise ShapeMismatch("Response does not contain a tasks array")
    if not isinstance(data.get('metadata'), dict):
        raise ShapeMismatch("Response does not contain a metadata object")

    if len(data['tasks']) != num_tasks:
        log('warn', f"Expected {num_tasks} tasks, but got {len(data['tasks'])}")
    return data


def normalize_subtasks(data: Any, parent_task_id: Any, num_subtasks: int) -> List[Dict[str, Any]]:
    """Renumber model subtasks as "<parent>.<n>" regardless of the IDs the model chose"""
    if not isinstance(data, list):
        raise ShapeMismatch("Response is not an array")
    if not all(isinstance(item, dict) for item in data):
        raise ShapeMismatch("Every subtask must be a JSON object")

    if len(data) != num_subtasks:
        log('warn', f"Expected {num_subtasks} subtasks, but got {len(data)}")

    subtasks = []
    for index, subtask in enumerate(data):
        normalized = dict(subtask)
        normalized['id'] = f"{parent_task_id}.{index + 1}"
        normalized.setdefault('status', 'pending')
        normalized['parentTaskId'] = parent_task_id
        subtasks.append(normalized)
    return subtasks


def fallback_subtasks(start_id: int, num_subtasks: int, parent_task_id: Any) -> List[Dict[str, Any]]:
    return [
        {
            'id': start_id + i,
            'title': f"Subtask {i + 1}",
            'description': FALLBACK_SUBTASK_DESCRIPTION,
            'status': 'pending',
            'dependencies': [],
            'parentTaskId': parent_task_id
        }
        for i in range(num_subtasks)
    ]


def parse_subtasks_from_text(text: str, start_id: int, num_subtasks: int, parent_task_id: Any) -> List[Dict[str, Any]]:
    """Parse a subtask array out of free text.

    Never fails: when the text holds no usable array, ``num_subtasks``
    placeholder subtasks are returned instead so the workflow can continue.
    """
    try:
        data = parse_json(extract_json(text or "", "array"))
        if not isinstance(data, list) or not data or not all(isinstance(item, dict) for item in data):
            raise ShapeMismatch("Parsed value is not a non-empty array of subtasks")
    except (NoJsonFound, MalformedJson, ShapeMismatch) as e:
        log('warn', f"Could not parse subtasks ({e}); creating {num_subtasks} fallback subtasks")
        return fallback_subtasks(start_id, num_subtasks, parent_task_id)

    if len(data) != num_subtasks:
        log('warn', f"Expected {num_subtasks} subtasks, but got {len(data)}")

    subtasks = []
    for index, item in enumerate(data):
        subtask = dict(item)
        subtask['id'] = start_id + index
        subtask['status'] = item.get('status') or 'pending'
        subtask['dependencies'] = coerce_dependencies(item.get('dependencies', []))
        subtask['parentTaskId'] = parent_task_id
        subtasks.append(subtask)
    return subtasks


def parse_complexity_report(text: str, task_id: Any) -> Dict[str, Any]:
    data = parse_json(extract_json(text, "object"))
    if not isinstance(data, dict):
        raise ShapeMismatch("Complexity analysis is not a JSON object")
    report = {'taskId': task_id}
    report.update({key: value for key, value in data.items() if key != 'taskId'})
    return report
