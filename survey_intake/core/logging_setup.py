import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    # uvicorn --reload and repeated create_app() calls must not stack handlers
    if not any(getattr(h, "_survey_intake", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._survey_intake = True
        root.addHandler(handler)
    root.setLevel(level.upper())
