import json
import logging
import re
from typing import Any, Dict, List

logger = logging.getLogger("CreativePipeline")

_FENCE = re.compile(r"```(?:json)?\s*|```")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def parse_json_response(content: str) -> Any:
    """
    Parses model output as JSON, tolerating markdown fences and trailing commas.
    """
    try:
        return json.loads(content)
    except (TypeError, json.JSONDecodeError):
        pass

    cleaned = _FENCE.sub("", content or "").strip()
    cleaned = _TRAILING_COMMA.sub(r"\1", cleaned)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        logger.error(f"Failed to parse model response: {(content or '')[:500]}")
        raise ValueError("Failed to parse model response as JSON")


def extract_suggestions(payload: Any) -> List[Dict[str, Any]]:
    """
    Pulls the list of suggestion objects out of a parsed payload.
    Accepts ``{"suggestions": [...]}``, a bare list, or a single object.
    """
    if isinstance(payload, dict):
        if isinstance(payload.get("suggestions"), list):
            items = payload["suggestions"]
        elif "content" in payload or "nativeContent" in payload:
            items = [payload]
        else:
            raise ValueError("Response has no 'suggestions' list")
    elif isinstance(payload, list):
        items = payload
    else:
        raise ValueError("Unexpected response shape")
    return [item for item in items if isinstance(item, dict)]


def as_metrics(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return []
