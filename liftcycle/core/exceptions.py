class DomainError(Exception):
    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(DomainError):
    def __init__(self, entity: str, message: str | None = None, details: dict | None = None):
        code = f"NF_{entity.upper()}_001"
        msg = message or f"{entity} not found"
        super().__init__(code, msg, details)


class ValidationError(DomainError):
    """Malformed input rejected before any state is mutated."""

    def __init__(self, field: str, message: str, details: dict | None = None):
        code = f"VAL_{field.upper()}_001"
        msg = f"Validation failed for {field}: {message}"
        super().__init__(code, msg, details or {"field": field})


class PersistenceError(DomainError):
    """The item store was unreachable, timed out, or rejected a write."""

    def __init__(self, operation: str, message: str, details: dict | None = None):
        code = f"PERSIST_{operation.upper()}_001"
        super().__init__(code, message, details or {"operation": operation})


class AnalysisError(DomainError):
    """The external analysis call failed or could not be completed."""

    def __init__(self, message: str, code: str = "ANALYSIS_001", details: dict | None = None):
        super().__init__(code, message, details)


class AuthenticationError(DomainError):
    def __init__(self, message: str, code: str = "AUTH_001", details: dict | None = None):
        super().__init__(code, message, details)
