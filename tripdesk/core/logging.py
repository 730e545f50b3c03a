"""
Logging setup for the CLI and embedding applications
"""
import logging.config

from .config import settings


def configure_logging(level: str = None):
    logging.config.dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'verbose': {
                'format': '[{levelname}] {asctime} {module} {message}',
                'style': '{',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'verbose',
            },
        },
        'root': {
            'handlers': ['console'],
            'level': 'WARNING',
        },
        'loggers': {
            'tripdesk': {
                'level': (level or settings.LOG_LEVEL).upper(),
            },
        },
    })
