"""
Error Message Utilities

Turns PostgreSQL driver errors into readable messages for the `failed`
responses returned by query and ingestion endpoints.
"""

import re

# Human-readable explanations keyed by SQLSTATE-ish error text patterns
_PATTERNS = [
    (
        re.compile(r'column "(\w+)" (?:of relation "\w+" )?does not exist'),
        lambda m: f"Unknown column '{m.group(1)}'. Check the query template and the configured fields.",
    ),
    (
        re.compile(r'relation "(\w+)" does not exist'),
        lambda m: f"Unknown table '{m.group(1)}'.",
    ),
    (
        re.compile(r'invalid input syntax for type (\w[\w ]*): "([^"]*)"'),
        lambda m: f"Invalid value '{m.group(2)}' for type {m.group(1)}.",
    ),
    (
        re.compile(r'invalid input for query argument \$(\d+): (.*)'),
        lambda m: f"Invalid value for query parameter ${m.group(1)}: {m.group(2)}",
    ),
    (
        re.compile(r'value too long for type character varying\((\d+)\)'),
        lambda m: f"Value too long: text fields hold at most {m.group(1)} characters.",
    ),
    (
        re.compile(r'duplicate key value violates unique constraint "(\w+)"'),
        lambda m: f"Duplicate entry: A record with this value already exists ({m.group(1)}).",
    ),
    (
        re.compile(r'null value in column "(\w+)" .* violates not-null constraint'),
        lambda m: f"Required field missing: '{m.group(1)}' cannot be null.",
    ),
    (
        re.compile(r'syntax error at or near "([^"]*)"'),
        lambda m: f"SQL syntax error near '{m.group(1)}'.",
    ),
]


def enhance_error_message(error: Exception) -> str:
    """
    Enhance database error messages with human-readable explanations.

    Returns the original message when no pattern matches.
    """
    error_str = str(error)
    for pattern, render in _PATTERNS:
        match = pattern.search(error_str)
        if match:
            return render(match)
    return error_str
