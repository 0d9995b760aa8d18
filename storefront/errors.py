"""Error taxonomy shared by the rule engine and the hydration pipeline."""

from __future__ import annotations


class StorefrontError(RuntimeError):
    """Base error carrying a machine code and an HTTP-equivalent status."""

    code = "STOREFRONT_ERROR"
    status_code = 500

    def __init__(self, message: str, detail: str = "") -> None:
        suffix = f" detail={detail}" if detail else ""
        super().__init__(f"{self.code}: {message}{suffix}")
        self.message = message
        self.detail = detail


class ValidationError(StorefrontError):
    """Malformed rule: unknown type, disallowed field, missing filter or bound."""

    code = "RULE_VALIDATION_FAILED"
    status_code = 400


class NotFoundError(StorefrontError):
    """A saved rule, page or taxonomy entry does not exist for the tenant."""

    code = "NOT_FOUND"
    status_code = 404


class ResolutionError(StorefrontError):
    """Failure while resolving a single section's data."""

    code = "SECTION_RESOLUTION_FAILED"
    status_code = 500

    def __init__(self, section_id: str, section_type: str, cause: BaseException) -> None:
        super().__init__(
            f"Section {section_id} ({section_type}) could not be resolved",
            detail=str(cause) or type(cause).__name__,
        )
        self.section_id = section_id
        self.section_type = section_type
