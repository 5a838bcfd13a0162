from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

# Context variables for structured logging
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
goal_id_var: ContextVar[str] = ContextVar("goal_id", default="-")
account_id_var: ContextVar[str] = ContextVar("account_id", default="-")


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        record.goal_id = goal_id_var.get()
        record.account_id = account_id_var.get()
        return True


class SimpleStructuredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
        msg = record.getMessage()
        return (
            f"{ts} level={record.levelname} logger={record.name} "
            f"request_id={getattr(record, 'request_id', '-')} goal_id={getattr(record, 'goal_id', '-')} "
            f"account_id={getattr(record, 'account_id', '-')} "
            f"msg={msg}"
        )


def setup_logging(level: str = "INFO") -> None:
    lvl = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(lvl)

    # Replace handlers (avoid duplicate logs when called twice)
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(lvl)
    handler.addFilter(ContextFilter())
    handler.setFormatter(SimpleStructuredFormatter())

    root.addHandler(handler)


def set_log_context(*, request_id: str, goal_id: Optional[str] = None, account_id: Optional[str] = None) -> None:
    request_id_var.set(request_id)
    if goal_id is not None:
        goal_id_var.set(goal_id)
    if account_id is not None:
        account_id_var.set(account_id)


def set_goal(goal_id: str) -> None:
    goal_id_var.set(goal_id)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
