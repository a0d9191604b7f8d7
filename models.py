"""
Data models for the gateway
Using Pydantic for validation and serialization

- FieldSpec: one configured column of the managed table
- GatewayResponse: the envelope every endpoint answers with
"""

import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

# Column/table names are interpolated into DDL unquoted, and PostgreSQL folds
# unquoted identifiers to lower case, so only lower-case identifiers are accepted
IDENTIFIER_RE = re.compile(r"^[a-z_][a-z0-9_]*$")

# Columns managed by the gateway itself
PRESERVED_FIELD_NAMES = frozenset({"id"})


def is_identifier(name: str) -> bool:
    return bool(IDENTIFIER_RE.match(name or ""))


# ============================================================================
# Configuration models
# ============================================================================

class FieldSpec(BaseModel):
    """A named, typed attribute of the managed record (one table column)"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    # Type name such as "number" or "string(64)", or a pre-built TypeMapping
    type: Any = "string"

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not is_identifier(v):
            raise ValueError(f"Invalid field name: {v!r}")
        return v


# ============================================================================
# Response models
# ============================================================================

class ResponseStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    ACCESS_DENIED = "access-denied"
    RATE_LIMITED = "rate-limited"


STATUS_CODES = {
    ResponseStatus.SUCCESS: 200,
    ResponseStatus.FAILED: 400,
    ResponseStatus.ACCESS_DENIED: 401,
    ResponseStatus.RATE_LIMITED: 429,
}


class GatewayResponse(BaseModel):
    """Result of a route handler: HTTP status code plus JSON payload"""
    status: ResponseStatus
    message: Optional[str] = None
    data: Any = None
    time: Optional[float] = None  # remaining rate-limit wait (ms)
    date: Optional[int] = None  # server time (epoch ms)

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.status]

    def to_payload(self) -> dict:
        """JSON body; unset optional keys are left out."""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def success(cls, data: Any = None, **extra) -> "GatewayResponse":
        return cls(status=ResponseStatus.SUCCESS, data=data, **extra)

    @classmethod
    def failed(cls, message: str) -> "GatewayResponse":
        return cls(status=ResponseStatus.FAILED, message=message)

    @classmethod
    def access_denied(cls) -> "GatewayResponse":
        return cls(status=ResponseStatus.ACCESS_DENIED, message="Access denied")

    @classmethod
    def rate_limited(cls, remaining: float) -> "GatewayResponse":
        return cls(status=ResponseStatus.RATE_LIMITED, message="Rate limited", time=remaining)
