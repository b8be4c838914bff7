"""Newline-delimited JSON helpers for model output and phase checkpoints."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Union

logger = logging.getLogger(__name__)


def parse_ndjson(text: str) -> Iterator[Dict[str, Any]]:
    """
    Parse NDJSON text into objects, one per non-blank line.

    Lines that are not a JSON object (markdown fences, prose, arrays, broken
    JSON) are logged and skipped.

    Args:
        text: Raw NDJSON text, typically model output.

    Returns:
        Iterator over the parsed objects, in input order.
    """
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            element = json.loads(line)
        except json.JSONDecodeError:
            logger.warning("Skipping invalid JSON line: %s", line)
            continue
        if not isinstance(element, dict):
            logger.warning("Skipping non-object JSON line: %s", line)
            continue
        yield element


def to_ndjson(elements: Iterable[Dict[str, Any]]) -> str:
    """Serialize objects as NDJSON, one compact object per line (no trailing newline)."""
    return "\n".join(json.dumps(element, ensure_ascii=False) for element in elements)


def write_ndjson(path: Union[str, Path], elements: Iterable[Dict[str, Any]]) -> None:
    """Write objects to ``path`` as NDJSON, one per line."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for element in elements:
            f.write(json.dumps(element, ensure_ascii=False))
            f.write("\n")


def read_ndjson(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Read an NDJSON file written by ``write_ndjson`` (invalid lines are skipped)."""
    return list(parse_ndjson(Path(path).read_text(encoding="utf-8")))


def get_nested(element: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    Look up a dotted path such as ``"attrs.age"`` in nested dictionaries.

    Returns ``default`` when any segment is missing or a non-dict is reached.
    """
    current: Any = element
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current
