from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions.
    return "json"


def save_record(path: str, record: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    fmt = _detect_format(p)
    if fmt in {"yaml", "yml"}:
        try:
            import yaml  # type: ignore
        except Exception as e:  # pragma: no cover
            raise RuntimeError(
                "YAML run record requested but PyYAML is not available. "
                "Use a .json record path or install PyYAML."
            ) from e
        p.write_text(yaml.safe_dump(record, sort_keys=False) + "\n", encoding="utf-8")
    else:
        p.write_text(json.dumps(record, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    logger.debug("Run record saved to %s", p)


def new_record(config: Dict[str, Any]) -> Dict[str, Any]:
    """Fresh run record; config must already be redacted."""

    return {
        "version": 1,
        "config": config,
        "hardware": {},
        "layout": {},
        "execution": {
            "current_step": None,
            "completed_steps": [],
            "ran_steps": [],
            "skipped_steps": [],
            "forced_steps": [],
            "errors": [],
        },
    }


def record_error(record: Dict[str, Any], error: BaseException) -> None:
    exe = record.setdefault("execution", {})
    exe.setdefault("errors", []).append({"step": exe.get("current_step"), "error": str(error)})
