import logging

from .config import LOG_LEVEL


def setup_logging(level: str = LOG_LEVEL) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # keep uvicorn's handlers, replace only ours on reload
    for handler in list(root.handlers):
        if getattr(handler, "_amenity_booking", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    handler._amenity_booking = True
    root.addHandler(handler)
