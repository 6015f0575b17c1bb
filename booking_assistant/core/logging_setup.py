import logging

CONTEXT_KEYS = ("message_id", "sender", "intent", "action", "step", "event_id", "reason")


class ContextFormatter(logging.Formatter):
    """Append known `extra={...}` fields to the log line as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


def configure_logging(level: str) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter("%(asctime)s %(levelname)s:%(name)s:%(message)s"))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)

    # httpx logs every request at INFO, including URLs with tokens
    logging.getLogger("httpx").setLevel(logging.WARNING)
