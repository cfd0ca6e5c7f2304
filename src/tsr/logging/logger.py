from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

# LogRecord attributes that are never copied into the JSON payload
_RESERVED = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class LogConfig:
    level: str = "info"
    json: bool = False
    to_file: Optional[str] = None

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any], **overrides: Any) -> "LogConfig":
        """Build from the `log` section of a loaded config; non-None overrides win."""
        sec = dict(cfg.get("log") or {})
        sec.update({k: v for k, v in overrides.items() if v is not None})
        return cls(
            level=str(sec.get("level", "info")),
            json=bool(sec.get("json", False)),
            to_file=(str(sec["to_file"]) if sec.get("to_file") else None),
        )


class _JsonFormatter(logging.Formatter):
    """One JSON object per line, UTC timestamps; `extra=` fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "name": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        payload.update(
            (k, v) for k, v in record.__dict__.items()
            if k not in _RESERVED and not k.startswith("_") and k not in payload
        )
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(cfg: LogConfig) -> None:
    """Install handlers on the root logger, replacing whatever was there."""
    lvl = _LEVELS.get(cfg.level.lower().strip(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = _JsonFormatter() if cfg.json else logging.Formatter(_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if cfg.to_file:
        os.makedirs(os.path.dirname(cfg.to_file) or ".", exist_ok=True)
        handlers.append(logging.FileHandler(cfg.to_file, encoding="utf-8"))
    for h in handlers:
        h.setLevel(lvl)
        h.setFormatter(fmt)
        root.addHandler(h)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
