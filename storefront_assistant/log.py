import logging
from typing import Optional

ROOT_LOGGER = "storefront_assistant"


def get_logger(name: Optional[str] = None, level: Optional[str] = None) -> logging.Logger:
    """Return a child of the package logger, attaching one stream handler to the root
    package logger the first time it is requested.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
        root.setLevel(logging.INFO)
    if level:
        root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not name or name == ROOT_LOGGER:
        return root
    return root.getChild(name)
