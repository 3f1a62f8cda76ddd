"""
Logging setup.

Modules log through logging.getLogger(__name__); this installs a single
rich handler on the root logger and turns down the chattier client
libraries. Call once at process start (the API lifespan does).
"""

import logging

from rich.logging import RichHandler

_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "sqlalchemy.engine", "botocore", "urllib3")


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())

    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(rich_tracebacks=True, show_path=False, markup=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="[%X]"))
        root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
