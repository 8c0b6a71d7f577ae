"""Tests for StructuredFormatter and LogContext."""

import json
import logging
import sys

from estate_kernel.exceptions import InvalidTransitionError
from estate_kernel.logging_config import LogContext, StructuredFormatter, get_logger


def _format(exc_info=None, **extra):
    record = logging.LogRecord(
        name="estate_kernel.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="something_happened",
        args=(),
        exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return json.loads(StructuredFormatter().format(record))


def test_one_json_line_with_extras():
    payload = _format(asset_id="abc", to_status="in_review")
    assert payload["message"] == "something_happened"
    assert payload["level"] == "INFO"
    assert payload["asset_id"] == "abc"
    assert payload["to_status"] == "in_review"


def test_context_fields_included_and_restored():
    with LogContext.bind(correlation_id="c-1", command="transition_asset"):
        inside = _format()
        with LogContext.bind(task_type="isnad.sla_breach"):
            nested = _format()
    outside = _format()

    assert inside["correlation_id"] == "c-1"
    assert nested["task_type"] == "isnad.sla_breach"
    assert nested["command"] == "transition_asset"
    assert "correlation_id" not in outside
    assert "task_type" not in outside


def test_kernel_error_fields_flattened():
    try:
        raise InvalidTransitionError("IsnadForm", "f-1", "approved", "pending_ceo", reason="terminal")
    except InvalidTransitionError:
        payload = _format(exc_info=sys.exc_info())

    assert payload["exc_type"] == "InvalidTransitionError"
    assert payload["exc_code"] == "INVALID_TRANSITION"
    assert payload["exc_from_status"] == "approved"
    assert "traceback" in payload


def test_loggers_live_under_kernel_namespace():
    assert get_logger("batch.sweep").name == "estate_kernel.batch.sweep"
