from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from story_portfolio.logging import JsonFormatter, LogConfig, PlainFormatter, add_run_log_file, setup_logging
from story_portfolio.util.serialization import sanitize_for_json, stable_json_dumps


class _Colour(Enum):
    RED = "red"


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="unit",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="hello %s",
        args=("world",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_keeps_step_extras_and_skips_objects() -> None:
    payload = json.loads(
        JsonFormatter().format(_record(step="assemble", phase="warning", ip_id="x", bad={"obj": object()}))
    )

    assert payload["message"] == "hello world"
    assert payload["level"] == "WARNING"
    assert payload["step"] == "assemble"
    assert payload["ip_id"] == "x"
    assert "bad" not in payload


def test_plain_formatter_prefixes_step_and_phase() -> None:
    line = PlainFormatter().format(_record(step="render_graph", phase="complete", duration_ms=12))

    assert "WARNING unit: [render_graph:complete] hello world (duration_ms=12)" in line


def test_add_run_log_file_writes(tmp_path: Path) -> None:
    if getattr(setup_logging, "_configured", False):
        setattr(setup_logging, "_configured", False)
    setup_logging(LogConfig(level="INFO", json_logs=False))

    log_path = tmp_path / "logs" / "run.log"
    add_run_log_file(log_path)
    add_run_log_file(log_path)

    logging.getLogger("unit.test").info("file log test")

    root = logging.getLogger()
    file_handlers = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    assert len(file_handlers) == 1
    assert "file log test" in log_path.read_text(encoding="utf-8")
    for handler in file_handlers:
        root.removeHandler(handler)
        handler.close()


def test_sanitize_for_json_handles_common_types() -> None:
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)

    sanitized = sanitize_for_json({"when": ts, "path": Path("a/b"), "colour": _Colour.RED, "ids": ("a", "b")})

    assert sanitized == {"when": "2024-01-01T00:00:00+00:00", "path": "a/b", "colour": "red", "ids": ["a", "b"]}


def test_stable_json_dumps_sorts_keys() -> None:
    assert stable_json_dumps({"b": 1, "a": [2]}) == '{"a":[2],"b":1}'
    assert stable_json_dumps({"b": 1, "a": 2}, indent=2) == '{\n  "a": 2,\n  "b": 1\n}'


def test_plain_formatter_appends_output_path() -> None:
    line = PlainFormatter().format(_record(step="render", phase="complete", path="out/portfolio.html"))

    assert line.endswith("[render:complete] hello world -> out/portfolio.html")
