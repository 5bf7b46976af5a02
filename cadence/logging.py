"""
cadence.logging - Package logger and CLI logging setup.

Library modules log through ``get_logger``; only the CLI installs handlers.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("cadence")

# numba compiles librosa's kernels and is very chatty at DEBUG
_NOISY_LOGGERS = ("numba", "audioread")


def get_logger(name: str) -> logging.Logger:
    """Return a child of the package logger (e.g. ``engine``, ``analyze.pauses``)."""
    return logger.getChild(name)


def configure_logging(verbose: bool = False) -> None:
    """Install a stderr handler for CLI runs.

    Args:
        verbose: Show cadence DEBUG records with their stage logger name;
            otherwise only warnings
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s [%(name)s] %(message)s",
        )
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
