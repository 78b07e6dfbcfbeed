"""Process-scoped runtime context."""

from dataclasses import dataclass
from typing import ClassVar

import structlog


DEFAULT_NOTICE = (
    "aem-ops targets AEM 6.5 on-premise and AMS instances; "
    "AEM as a Cloud Service is not supported yet"
)


@dataclass
class RuntimeContext:
    """State shared by every operation in one process.

    Created once by the host at start-up. Holds the one-time notice flag
    so that repeated invocations log the notice only once.
    """

    notice: str = DEFAULT_NOTICE
    notice_logged: bool = False

    _instance: ClassVar["RuntimeContext | None"] = None

    @classmethod
    def initialize(cls, notice: str = DEFAULT_NOTICE) -> "RuntimeContext":
        """Create the process context, or return the existing one."""
        if cls._instance is None:
            cls._instance = cls(notice=notice)
        return cls._instance

    @classmethod
    def get_instance(cls) -> "RuntimeContext":
        """Get the process context, creating it with defaults if needed."""
        return cls.initialize()

    @classmethod
    def reset(cls) -> None:
        """Drop the process context (primarily for testing)."""
        cls._instance = None

    def log_notice(self) -> bool:
        """Log the notice unless it was already logged.

        Returns:
            True if the notice was emitted by this call.
        """
        if self.notice_logged:
            return False
        self.notice_logged = True
        structlog.get_logger().warning("runtime_notice", notice=self.notice)
        return True
