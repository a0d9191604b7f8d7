"""
Gateway error taxonomy

Startup errors (configuration, type resolution, schema migration, template
compilation) abort initialization. Request errors are recoverable and are
turned into structured failure responses by the handlers.
"""

from typing import Optional


class GatewayError(Exception):
    """Base class for all gateway errors"""


# ============================================================================
# Startup errors
# ============================================================================

class ConfigurationError(GatewayError):
    """Invalid gateway configuration (bad field name, duplicate field, ...)"""


class TypeResolutionError(GatewayError):
    """Unknown or malformed field type descriptor"""

    def __init__(self, descriptor, reason: Optional[str] = None):
        self.descriptor = descriptor
        message = f"Invalid field type: {descriptor}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class SchemaMigrationError(GatewayError):
    """Storage rejected a DDL statement during reconciliation"""

    def __init__(self, statement: str, cause: Exception):
        self.statement = statement
        self.cause = cause
        super().__init__(f"Failed to apply schema statement `{statement}`: {cause}")


class TemplateError(GatewayError):
    """A query template could not be compiled"""

    def __init__(self, query_name: Optional[str], message: str):
        self.query_name = query_name
        prefix = f"Query '{query_name}': " if query_name else ""
        super().__init__(f"{prefix}{message}")


# ============================================================================
# Request errors
# ============================================================================

class RequestError(GatewayError):
    """Per-request failure that is reported back to the caller"""


class MissingFieldError(RequestError):
    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Missing field: {field_name}")


class InvalidFieldError(RequestError):
    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Invalid field value: {field_name}")


class AccessDeniedError(RequestError):
    def __init__(self, identity: Optional[str] = None):
        self.identity = identity
        super().__init__("Access denied")


class RateLimitedError(RequestError):
    def __init__(self, identity: str, remaining: float):
        self.identity = identity
        self.remaining = remaining
        super().__init__("Rate limited")


class StorageError(GatewayError):
    """The database rejected a statement or is unavailable"""
