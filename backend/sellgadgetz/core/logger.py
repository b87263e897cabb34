import logging
import re
import sys

from sellgadgetz.core.config import LOG_LEVEL

# 로그에 남으면 안 되는 값 패턴
_SENSITIVE_PATTERN = re.compile(
    r"(password|passwd|secret|token|authorization|cookie)\s*[=:]\s*\S+",
    re.IGNORECASE,
)


class SensitiveDataFilter(logging.Filter):
    """Redacts credentials from log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = _SENSITIVE_PATTERN.sub(
                lambda m: re.split(r"\s*[=:]", m.group(), maxsplit=1)[0] + "=***REDACTED***",
                record.msg,
            )
        return True


def setup_logging(level: str = LOG_LEVEL):
    """
    애플리케이션 로깅을 설정합니다.
    여러 번 호출되어도 핸들러가 중복 등록되지 않습니다.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if any(getattr(h, "_sellgadgetz", False) for h in root_logger.handlers):
        return

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(SensitiveDataFilter())
    console_handler._sellgadgetz = True
    root_logger.addHandler(console_handler)

    # SQL echo는 config의 SQL_ECHO로만 제어
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
