from __future__ import annotations
import logging
import os

_DEFAULT_GENSYM_PREFIX = '_theta_gensym'
_DEFAULT_LOG_LEVEL = 'WARNING'


def setting_from_env(var: str, default: str) -> str:
    raw = os.environ.get(var)
    if not raw or not raw.strip():
        return default
    return raw.strip()


def get_gensym_prefix() -> str:
    return setting_from_env('THETA_GENSYM_PREFIX', _DEFAULT_GENSYM_PREFIX)


def get_log_level() -> int:
    name = setting_from_env('THETA_LOG_LEVEL', _DEFAULT_LOG_LEVEL).upper()
    level = logging.getLevelName(name)
    # getLevelName returns a string for unknown names
    return level if isinstance(level, int) else logging.WARNING


def configure_logging() -> logging.Logger:
    """Apply THETA_LOG_LEVEL to the package logger and attach a stderr handler once.

    Opt-in; theta itself never calls this.
    """
    logger = logging.getLogger('theta')
    logger.setLevel(get_log_level())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(handler)
    return logger
