import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from chat_core.config.settings import settings


class JsonFormatter(logging.Formatter):
    def __init__(self, redact_content: bool = False):
        super().__init__()
        self._redact_content = redact_content

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if self._redact_content:
            msg = (msg or "")[:64]
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


_file_handler: Optional[logging.FileHandler] = None


def setup_logger(cfg=settings) -> logging.Logger:
    """按配置（重新）设置 chat_core logger；重复调用时替换上一次的文件 handler。"""

    global _file_handler
    logger = logging.getLogger("chat_core")
    logger.setLevel(getattr(logging, str(cfg.log_level).upper(), logging.INFO))
    if _file_handler is not None:
        logger.removeHandler(_file_handler)
        _file_handler.close()
    log_dir = Path(cfg.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / "chat.log", encoding="utf-8")
    fh.setFormatter(JsonFormatter(redact_content=cfg.log_redact_content))
    logger.addHandler(fh)
    _file_handler = fh
    return logger


logger = setup_logger()
