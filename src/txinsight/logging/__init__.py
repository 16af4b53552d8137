"""txinsight logging — structured event logging over structlog."""

from txinsight.logging.port import LoggingPort
from txinsight.logging.structlog_adapter import LoggingSettings, StructlogAdapter

__all__ = ["LoggingPort", "LoggingSettings", "StructlogAdapter"]
