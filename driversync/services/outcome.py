"""Uniform result shape returned by every public delivery operation.

A ``MutationOutcome`` is either ``{"success": True, "data": ...}`` or
``{"success": False, "error": "...", "code": "..."}``. It is built per call
and handed to the caller; nothing downstream keeps a reference to it.
"""

from dataclasses import dataclass
from typing import Any

from driversync.errors.registry import get_error


@dataclass
class MutationOutcome:
    """Tagged success/failure result.

    Attributes:
        success: Whether the primary mutation was applied.
        data: Optional payload on success (e.g. ``{"id": ...}``).
        error: Human-readable message on failure.
        code: Optional outcome code from the error registry.
    """

    success: bool
    data: Any = None
    error: str | None = None
    code: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "MutationOutcome":
        """Build a success outcome."""
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, code: str | None = None) -> "MutationOutcome":
        """Build a failure outcome with an explicit message."""
        return cls(success=False, error=error, code=code)

    @classmethod
    def from_code(cls, code: str, message: str | None = None) -> "MutationOutcome":
        """Build a failure outcome using the registry's default message.

        Args:
            code: Registered outcome code.
            message: Optional override for the registry message.

        Returns:
            Failure outcome carrying ``code``.
        """
        error_def = get_error(code)
        default = error_def.message if error_def else f"Unknown error: {code}"
        return cls(success=False, error=message or default, code=code)

    @property
    def requires_login(self) -> bool:
        """True when the caller should force a re-login flow."""
        if self.success or self.code is None:
            return False
        error_def = get_error(self.code)
        return bool(error_def and error_def.requires_login)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire shape, omitting unset optional keys."""
        if self.success:
            result: dict[str, Any] = {"success": True}
            if self.data is not None:
                result["data"] = self.data
            return result
        result = {"success": False, "error": self.error or ""}
        if self.code is not None:
            result["code"] = self.code
        return result
