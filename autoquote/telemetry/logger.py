import json
import logging
import os

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    def format(self, rec: logging.LogRecord) -> str:
        payload = {"level": rec.levelname, "msg": rec.getMessage(), "logger": rec.name}
        for key, value in vars(rec).items():
            if key not in _RESERVED and not key.startswith("_"):
                payload[key] = value
        if rec.exc_info and rec.exc_info[1] is not None:
            payload["exception"] = self.formatException(rec.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def get_logger(name: str = "autoquote") -> logging.Logger:
    lg = logging.getLogger(name)
    if not lg.handlers:
        h = logging.StreamHandler()
        h.setFormatter(JsonFormatter())
        lg.addHandler(h)
        lg.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    return lg
