import json
import re
from typing import Any, Dict, Iterator

_FENCE = re.compile(r"```(?:[a-zA-Z0-9_-]+)?\s*(.*?)```", re.DOTALL)


# ============================================================
# SAFE JSON LOADER (LLM TRUST BOUNDARY)
# ============================================================

def _balanced_objects(text: str) -> Iterator[str]:
    """Every top-level {...} span in text, honouring string literals."""
    depth = 0
    start = -1
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            if depth > 0:
                in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield text[start:i + 1]


def iter_json_objects(text: str) -> Iterator[Dict[str, Any]]:
    """
    Yield JSON objects found in LLM output, most likely first.

    Strategy:
    1. The whole text as JSON (fast path)
    2. Contents of ``` fenced blocks, with or without a language tag
    3. Each balanced {...} span in the prose

    NEVER throws. Non-object JSON values are skipped.
    """
    if not text or not isinstance(text, str):
        return

    candidates = [text.strip()]
    candidates.extend(m.group(1).strip() for m in _FENCE.finditer(text))
    candidates.extend(_balanced_objects(text))

    seen = set()
    for candidate in candidates:
        if not candidate or candidate in seen:
            continue
        seen.add(candidate)
        try:
            value = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(value, dict):
            yield value
