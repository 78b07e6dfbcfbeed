"""Validation result model."""

from pydantic import BaseModel, ConfigDict

from aem_ops.errors import AemErrorCode, ErrorDetails


class ValidationResult(BaseModel):
    """Outcome of a validation check. Validators return it, never raise."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    valid: bool
    error: ErrorDetails | None = None
    notes: tuple[str, ...] = ()

    @classmethod
    def ok(cls, *notes: str) -> "ValidationResult":
        """Build a passing result."""
        return cls(valid=True, notes=notes)

    @classmethod
    def fail(
        cls,
        code: AemErrorCode,
        message: str,
        *,
        path: str | None = None,
        url: str | None = None,
        pattern: str | None = None,
    ) -> "ValidationResult":
        """Build a failing result with structured error details."""
        context = {"pattern": pattern} if pattern is not None else {}
        return cls(
            valid=False,
            error=ErrorDetails(
                code=code, message=message, path=path, url=url, context=context
            ),
        )

    @property
    def message(self) -> str:
        """Error message, or an empty string when valid."""
        return self.error.message if self.error else ""
