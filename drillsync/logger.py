"""Enhanced logging configuration."""

import os
import json
import logging
import logging.config
from datetime import datetime

_RESERVED = frozenset((
    'args', 'asctime', 'created', 'exc_info', 'exc_text', 'filename',
    'funcName', 'id', 'levelname', 'levelno', 'lineno', 'module',
    'msecs', 'message', 'msg', 'name', 'pathname', 'process',
    'processName', 'relativeCreated', 'stack_info', 'taskName', 'thread', 'threadName',
))


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for better parsing."""

    def format(self, record):
        log_data = {
            'timestamp': datetime.utcnow().isoformat(),
            'level': record.levelname,
            'name': record.name,
            'message': record.getMessage(),
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        # Extra fields passed through ``extra=``
        for key, value in record.__dict__.items():
            if key not in _RESERVED and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def build_logging_config(log_level='INFO', log_format='standard', log_dir=None):
    """Return a dictConfig mapping for the given level, format and directory."""
    formatter = 'json' if log_format == 'json' else 'standard'
    handlers = {
        'console': {
            'class': 'logging.StreamHandler',
            'level': log_level,
            'formatter': formatter,
        },
    }
    if log_dir:
        handlers['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'level': log_level,
            'formatter': formatter,
            'filename': os.path.join(log_dir, 'drillsync.log'),
            'maxBytes': 10485760,  # 10 MB
            'backupCount': 5,
        }
        handlers['error_file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'level': 'ERROR',
            'formatter': formatter,
            'filename': os.path.join(log_dir, 'error.log'),
            'maxBytes': 10485760,
            'backupCount': 5,
        }

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'json': {
                '()': JSONFormatter
            }
        },
        'handlers': handlers,
        'loggers': {
            'drillsync': {
                'level': log_level,
                'handlers': [name for name in handlers if name != 'console'],
                'propagate': True
            },
            'werkzeug': {
                'level': 'WARNING',
                'handlers': ['console'],
                'propagate': False
            }
        },
        'root': {
            'level': log_level,
            'handlers': ['console'],
        },
    }


def setup_logging(app):
    """Setup logging for the application."""
    log_level = str(app.config.get('LOG_LEVEL', 'INFO')).upper()
    log_format = app.config.get('LOG_FORMAT', 'standard')
    log_dir = app.config.get('LOG_DIR')

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    logging.config.dictConfig(build_logging_config(log_level, log_format, log_dir))
    app.logger.info(f"Logging set up with level {log_level}")
