"""
Query Binder

Maps named request parameters onto the positional parameters of a compiled
query. Fails on the first missing or invalid parameter, in template order.
"""

from typing import Any, Mapping

from errors import MissingFieldError, InvalidFieldError
from .compiler import CompiledQuery


def bind(compiled: CompiledQuery, params: Mapping[str, Any]) -> list:
    """
    Build the positional argument list for `compiled`.

    Raises:
        MissingFieldError: a parameter is absent or empty
        InvalidFieldError: a registered validator rejected the raw value
        Exception: whatever a preprocessor raises, unchanged
    """
    values = []
    for name in compiled.variable_order:
        value = params.get(name)
        if value is None or value == "":
            raise MissingFieldError(name)

        validator = compiled.validators.get(name)
        if validator is not None and not validator(value):
            raise InvalidFieldError(name)

        preprocess = compiled.preprocessor.get(name)
        if preprocess is not None:
            value = preprocess(value)

        values.append(value)
    return values
