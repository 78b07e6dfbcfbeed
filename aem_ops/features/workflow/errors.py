"""Aggregate error raised at the workflow boundary."""

from aem_ops.errors import AemError, AemErrorCode


class WorkflowItemError(AemError):
    """A workflow item whose failures were declared fatal.

    Attributes:
        failures: (identifier, message) pairs for every failed unit of work.
    """

    def __init__(
        self,
        code: AemErrorCode,
        message: str,
        failures: list[tuple[str, str]] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(code, message, status_code=status_code)
        self.failures = failures or []
