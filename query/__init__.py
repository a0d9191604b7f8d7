"""
User-defined query templates

Templates are compiled once at startup into parameterized SQL. Values are
always passed as asyncpg positional parameters ($1, $2, ...), never
interpolated.
"""

from .compiler import QueryDefinition, CompiledQuery, compile_query
from .binder import bind
from .hydrator import serialize_value, rows_to_dicts

__all__ = [
    'QueryDefinition',
    'CompiledQuery',
    'compile_query',
    'bind',
    'serialize_value',
    'rows_to_dicts',
]
