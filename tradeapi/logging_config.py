import logging.config
import sys
from typing import Any, Dict

# 외부 라이브러리 로그는 경고 이상만 (요청마다 찍히는 디버그 로그 억제)
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "redis")


def build_logging_config(log_level: str = "INFO") -> Dict[str, Any]:
    log_level = log_level.upper()
    app_handlers = ["console", "error_console"]

    loggers: Dict[str, Any] = {
        "": {"handlers": ["console"], "level": log_level},
        "uvicorn.error": {"handlers": app_handlers, "level": log_level, "propagate": False},
        "uvicorn.access": {"handlers": ["console"], "level": log_level, "propagate": False},
        "tradeapi": {"handlers": app_handlers, "level": log_level, "propagate": False},
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"handlers": ["console"], "level": "WARNING", "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "format": "%(asctime)s | %(levelname)-8s | %(name)-36s | %(message)s",
            },
            "detailed": {
                "format": "%(asctime)s | %(levelname)-8s | %(name)s\n%(pathname)s:%(lineno)d\n%(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "simple",
                "stream": sys.stdout,
            },
            "error_console": {
                "class": "logging.StreamHandler",
                "formatter": "detailed",
                "stream": sys.stderr,
                "level": "WARNING",
            },
        },
        "loggers": loggers,
    }


def setup_logging(log_level: str = "INFO") -> None:
    """애플리케이션 로깅 설정 - tradeapi.* 모듈 로거는 모두 "tradeapi" 핸들러 사용"""
    logging.config.dictConfig(build_logging_config(log_level))
