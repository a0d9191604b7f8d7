"""
Query Template Compiler

Turns a template such as

    SELECT * FROM {table} WHERE {fields[0]} > {min_temp} ORDER BY {date} DESC

into parameterized SQL plus the ordered list of request parameters to bind:

    SELECT * FROM data WHERE temp > $1 ORDER BY date DESC    ["min_temp"]

Special tokens ({table}, {date}, {fields[i]}) are replaced by literal names at
compile time. Every other token becomes its own positional parameter, so a
token used twice is bound twice.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from errors import ConfigurationError, TemplateError
from schema.types import resolve_type

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"\{(.*?)\}")
FIELDS_TOKEN_RE = re.compile(r"^fields\[(.*)\]$")

TABLE_TOKEN = "table"
DATE_TOKEN = "date"


def _resolve_callables(
    query_name: Optional[str],
    section: str,
    entries: Optional[Mapping[str, Any]],
    attribute: str,
) -> dict[str, Callable]:
    """
    Resolve validator/preprocessor entries. An entry is either a callable or
    the name of a registered field type, in which case that type's validate
    (or parse) function is used.
    """
    resolved = {}
    for name, entry in (entries or {}).items():
        if isinstance(entry, str):
            resolved[name] = getattr(resolve_type(entry), attribute)
        elif callable(entry):
            resolved[name] = entry
        else:
            raise ConfigurationError(
                f"Query '{query_name}': {section} for '{name}' must be callable or a type name"
            )
    return resolved


@dataclass(frozen=True)
class QueryDefinition:
    """A user-authored query as it appears in the configuration"""
    template: str
    validators: Mapping[str, Callable[[Any], bool]] = field(default_factory=dict)
    preprocessor: Mapping[str, Callable[[Any], Any]] = field(default_factory=dict)
    serializer: Optional[Callable[[list], Any]] = None

    @classmethod
    def from_config(
        cls,
        value: Union[str, Mapping[str, Any], "QueryDefinition"],
        name: Optional[str] = None,
    ) -> "QueryDefinition":
        """
        Build a definition from a bare template string or a mapping with keys
        `query` (or `template`), `validators`, `preprocessor`, `serializer`.
        """
        if isinstance(value, QueryDefinition):
            return value
        if isinstance(value, str):
            return cls(template=value)
        if not isinstance(value, Mapping):
            raise ConfigurationError(f"Query '{name}': expected a template string or a mapping")

        template = value.get("query", value.get("template"))
        if not isinstance(template, str) or not template.strip():
            raise TemplateError(name, "missing query template")

        serializer = value.get("serializer")
        if serializer is not None and not callable(serializer):
            raise ConfigurationError(f"Query '{name}': serializer must be callable")

        return cls(
            template=template,
            validators=_resolve_callables(name, "validator", value.get("validators"), "validate"),
            preprocessor=_resolve_callables(name, "preprocessor", value.get("preprocessor"), "parse"),
            serializer=serializer,
        )


@dataclass(frozen=True)
class CompiledQuery:
    """A compiled template, built once and reused for every request"""
    name: Optional[str]
    sql: str
    variable_order: tuple[str, ...]
    validators: Mapping[str, Callable[[Any], bool]] = field(default_factory=dict)
    preprocessor: Mapping[str, Callable[[Any], Any]] = field(default_factory=dict)
    serializer: Optional[Callable[[list], Any]] = None

    def apply_serializer(self, rows: list) -> Any:
        """Pass result rows through the serializer, if one is configured"""
        if self.serializer is None:
            return rows
        return self.serializer(rows)


def compile_query(
    definition: Union[str, Mapping[str, Any], QueryDefinition],
    table_name: str,
    timestamp_column: str,
    field_names: Sequence[str],
    name: Optional[str] = None,
) -> CompiledQuery:
    """
    Compile a query template.

    Raises:
        TemplateError: unresolvable {fields[i]} index or empty placeholder
    """
    definition = QueryDefinition.from_config(definition, name)
    variable_order: list[str] = []

    def substitute(match: re.Match) -> str:
        token = match.group(1)
        if token == TABLE_TOKEN:
            return table_name
        if token == DATE_TOKEN:
            return timestamp_column

        fields_match = FIELDS_TOKEN_RE.match(token)
        if fields_match:
            try:
                index = int(fields_match.group(1))
            except ValueError:
                raise TemplateError(name, f"invalid field index in {{{token}}}") from None
            if not 0 <= index < len(field_names):
                raise TemplateError(
                    name, f"{{{token}}} is out of range ({len(field_names)} field(s) configured)"
                )
            return field_names[index]

        if not token.strip():
            raise TemplateError(name, "empty placeholder {}")

        variable_order.append(token)
        return f"${len(variable_order)}"

    sql = TOKEN_RE.sub(substitute, definition.template)

    unknown = (set(definition.validators) | set(definition.preprocessor)) - set(variable_order)
    if unknown:
        logger.warning(
            f"Query '{name}': validators/preprocessors for unknown parameter(s) {sorted(unknown)}"
        )

    return CompiledQuery(
        name=name,
        sql=sql,
        variable_order=tuple(variable_order),
        validators=dict(definition.validators),
        preprocessor=dict(definition.preprocessor),
        serializer=definition.serializer,
    )
