# ruff: noqa: INP001
"""Structured log formatting."""

from __future__ import annotations

import json
import logging

from taskpilot_archival.core.logging import JsonFormatter, KeyValueFormatter


def _record() -> logging.LogRecord:
    record = logging.LogRecord(
        name="taskpilot_archival.services.archival.archive",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="archival.archive.uploaded",
        args=(),
        exc_info=None,
    )
    record.board_id = "6f3ab1ec-3ef6-4f4d-a6a7-e2d6e5d6f7a8"
    record.size_bytes = 512
    return record


def test_key_value_formatter_appends_sorted_extras() -> None:
    line = KeyValueFormatter("%(levelname)s %(message)s").format(_record())

    assert line == (
        "INFO archival.archive.uploaded "
        "board_id=6f3ab1ec-3ef6-4f4d-a6a7-e2d6e5d6f7a8 size_bytes=512"
    )


def test_json_formatter_emits_extras_as_fields() -> None:
    payload = json.loads(JsonFormatter().format(_record()))

    assert payload["message"] == "archival.archive.uploaded"
    assert payload["level"] == "INFO"
    assert payload["board_id"] == "6f3ab1ec-3ef6-4f4d-a6a7-e2d6e5d6f7a8"
    assert payload["size_bytes"] == 512
