from __future__ import annotations

import logging

from goal_engine.utils.logging import ContextFilter, SimpleStructuredFormatter, set_goal, set_log_context


def test_structured_line_carries_context():
    set_log_context(request_id="req-1", goal_id="house")
    record = logging.LogRecord("goal_progress", logging.INFO, __file__, 1, "goal_progress_computed goals=1", None, None)
    ContextFilter().filter(record)
    line = SimpleStructuredFormatter().format(record)

    assert "level=INFO" in line
    assert "logger=goal_progress" in line
    assert "request_id=req-1" in line
    assert "goal_id=house" in line
    assert line.endswith("msg=goal_progress_computed goals=1")

    set_goal("trip")
    ContextFilter().filter(record)
    assert record.goal_id == "trip"
