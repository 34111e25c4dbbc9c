import json
import logging
import traceback
from datetime import datetime, timezone

from s3fileserver.config import Environment

TEXT_FORMAT = "[%(levelname)-7s:%(name)-15s] %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log collectors in production."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger.name": record.name,
            "code.module": record.module,
            "code.lineno": record.lineno,
        }
        if record.exc_info:
            log_entry["exception.type"] = record.exc_info[0].__name__
            log_entry["exception.message"] = str(record.exc_info[1])
            log_entry["exception.stacktrace"] = "".join(traceback.format_exception(*record.exc_info))
        return json.dumps(log_entry)


def setup_logging(environment: Environment, level: int = logging.INFO) -> None:
    handler = logging.StreamHandler()
    if environment == Environment.production:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)
    for noisy in ("botocore", "aiobotocore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
