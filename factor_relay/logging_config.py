"""
Logging setup for the relay.

configure_logging() is called once from create_app(). LOG_FORMAT picks text
or single-line JSON output; LOG_LEVEL defaults to INFO.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

# Attributes passed via `extra=` that are worth surfacing in JSON output
CONTEXT_FIELDS = ('item_id', 'triggered_by', 'attempt', 'context')


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log aggregators."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            if hasattr(record, name):
                entry[name] = getattr(record, name)
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


_QUIET_LOGGERS = [
    'urllib3',
    'sqlalchemy.engine',
    'werkzeug',
]


def configure_logging(app=None, level_name=None, log_format=None):
    """
    Install a single stderr handler on the root logger.

    Explicit arguments win over LOG_LEVEL / LOG_FORMAT. When a Flask app is
    given its own logger is routed through the root handler.
    """
    level_name = (level_name or os.getenv('LOG_LEVEL', 'INFO')).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    log_format = (log_format or os.getenv('LOG_FORMAT', 'text')).lower()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if log_format == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '[%(asctime)s] %(levelname)s %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
        ))
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        app.logger.handlers.clear()
        app.logger.propagate = True
