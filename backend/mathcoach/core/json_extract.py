"""JSON Extraction — recover a JSON object from free-form model output, pure.

Invariants:
    - Returns a dict or None; never raises on bad input
    - Only objects are accepted (a bare list or scalar is treated as unusable)

Design Decisions:
    - Fallback levels, cheapest first:
      1. Direct json.loads
      2. Regex: extract outermost {...} block (handles ```json fences and prose)
      3. Repair the block (full-width quotes, trailing commas) and retry
    - Schema validation is NOT done here; callers validate with pydantic
"""

import json
import re

_OBJECT_BLOCK = re.compile(r"\{[\s\S]*\}")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_FULLWIDTH = str.maketrans({
    "“": '"', "”": '"', "＂": '"',
    "‘": "'", "’": "'",
    "：": ":", "，": ",",
})


def _loads_object(text: str) -> dict | None:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


def repair_json_text(text: str) -> str:
    """Fix the common model mistakes that break json.loads."""
    repaired = text.translate(_FULLWIDTH)
    return _TRAILING_COMMA.sub(r"\1", repaired)


def parse_model_json(text: str | None) -> dict | None:
    if not text:
        return None
    text = text.strip()

    # Level 1: direct parse
    parsed = _loads_object(text)
    if parsed is not None:
        return parsed

    # Level 2: extract JSON block
    match = _OBJECT_BLOCK.search(text)
    if not match:
        return None
    block = match.group(0)
    parsed = _loads_object(block)
    if parsed is not None:
        return parsed

    # Level 3: repair and retry
    return _loads_object(repair_json_text(block))
