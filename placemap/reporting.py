"""Atomic writers for the render payload and run summaries."""
from __future__ import annotations

import json
import math
import os
import tempfile
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, TextIO

RENDER_FILENAME = "render.json"
SUMMARY_FILENAME = "summary.txt"
METRICS_FILENAME = "request_metrics.json"


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _fsync_dir(path: str) -> None:
    try:
        dir_fd = os.open(path, os.O_DIRECTORY)
    except (OSError, AttributeError):
        return
    try:
        os.fsync(dir_fd)
    except OSError:
        pass
    finally:
        os.close(dir_fd)


@contextmanager
def atomic_writer(
    path: str,
    encoding: str = "utf-8",
    newline: Optional[str] = None,
) -> Iterator[TextIO]:
    """Write to a sibling temp file and move it over ``path`` on success.

    Readers polling the output directory never see a half-written payload.
    """
    dir_path = os.path.dirname(path) or "."
    fd, tmp_path = tempfile.mkstemp(prefix=f".{os.path.basename(path)}.", suffix=".tmp", dir=dir_path)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline=newline) as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        _fsync_dir(dir_path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def atomic_write_text(path: str, text: str) -> None:
    with atomic_writer(path) as f:
        f.write(text)


def json_safe(value: Any) -> Any:
    """Replace NaN and infinities with None so the output stays strict JSON."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_safe(v) for v in value]
    return value


def write_json_object(path: str, payload: Dict[str, Any]) -> None:
    with atomic_writer(path) as f:
        json.dump(json_safe(payload), f, ensure_ascii=False, indent=2, allow_nan=False)


def write_summary(path: str, summary_lines: List[str]) -> None:
    atomic_write_text(path, "\n".join(summary_lines))


def write_render_outputs(
    out_dir: str,
    payload: Dict[str, Any],
    summary_lines: List[str],
    metrics: Optional[Dict[str, int]] = None,
) -> Dict[str, str]:
    ensure_dir(out_dir)
    paths = {
        "render": os.path.join(out_dir, RENDER_FILENAME),
        "summary": os.path.join(out_dir, SUMMARY_FILENAME),
    }
    write_json_object(paths["render"], payload)
    write_summary(paths["summary"], summary_lines)
    if metrics is not None:
        paths["metrics"] = os.path.join(out_dir, METRICS_FILENAME)
        write_json_object(paths["metrics"], metrics)
    return paths
