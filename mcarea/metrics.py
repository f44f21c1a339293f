"""Result records written by the example scripts."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, Optional


def _load_or_init(path: Path) -> Dict[str, Any]:
    if path.exists():
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    return {"config": {}, "runs": [], "summary": {}}


def append_metrics_json(path: Path, record: Dict[str, Any]) -> None:
    """Merge ``record`` into a results JSON blob.

    The backing file keeps the structure ``{"config": {...}, "runs": [...],
    "summary": {...}}``. ``config`` and ``summary`` keys are merged; any other
    keys form one entry appended to ``runs``.
    """

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = _load_or_init(path)

    if "config" in record:
        data["config"].update(record["config"])

    run = {k: v for k, v in record.items() if k not in ("config", "summary")}
    if run:
        data["runs"].append(run)

    if "summary" in record:
        data["summary"].update(record["summary"])

    with path.open("w", encoding="utf-8") as handle:
        json.dump(data, handle, indent=2, default=str)


def append_metrics_jsonl(
    path: Path,
    record: Dict[str, Any],
    *,
    is_writer_fn: Optional[Callable[[], bool]] = None,
) -> None:
    """Append ``record`` as a JSON line to ``path``.

    Args:
        path: Destination JSONL file.
        record: Metrics payload to serialise.
        is_writer_fn: Optional callback returning ``True`` when the caller is the
            designated writer (e.g. rank 0); other callers skip the write.
    """

    if is_writer_fn is not None and not is_writer_fn():
        return

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(record, default=str) + "\n")
