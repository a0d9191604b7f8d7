"""
Tests for query template compilation
"""

import pytest

from errors import ConfigurationError, TemplateError
from query import QueryDefinition, compile_query

FIELD_NAMES = ["temp", "humidity"]


def compile_(template, **kwargs):
    return compile_query(template, "data", "date", FIELD_NAMES, name="q", **kwargs)


class TestCompileQuery:
    """Token substitution"""

    def test_special_tokens(self):
        compiled = compile_("SELECT {fields[1]} FROM {table} ORDER BY {date} DESC")
        assert compiled.sql == "SELECT humidity FROM data ORDER BY date DESC"
        assert compiled.variable_order == ()

    def test_parameters_in_template_order(self):
        compiled = compile_("SELECT * FROM {table} WHERE {fields[0]} > {temp} AND {fields[1]} < {humidity}")
        assert compiled.sql == "SELECT * FROM data WHERE temp > $1 AND humidity < $2"
        assert compiled.variable_order == ("temp", "humidity")

    def test_repeated_token_is_bound_per_occurrence(self):
        compiled = compile_("SELECT {a} FROM {table} WHERE {b} = {a}")
        assert compiled.sql == "SELECT $1 FROM data WHERE $2 = $3"
        assert compiled.variable_order == ("a", "b", "a")

    def test_template_without_tokens(self):
        compiled = compile_("SELECT 1")
        assert compiled.sql == "SELECT 1"
        assert compiled.variable_order == ()

    def test_field_index_out_of_range(self):
        with pytest.raises(TemplateError, match="out of range"):
            compile_("SELECT {fields[2]} FROM {table}")

    def test_negative_field_index(self):
        with pytest.raises(TemplateError):
            compile_("SELECT {fields[-1]} FROM {table}")

    def test_non_integer_field_index(self):
        with pytest.raises(TemplateError, match="invalid field index"):
            compile_("SELECT {fields[x]} FROM {table}")

    def test_empty_placeholder(self):
        with pytest.raises(TemplateError, match="empty placeholder"):
            compile_("SELECT * FROM {table} WHERE temp > {}")

    def test_error_names_the_query(self):
        with pytest.raises(TemplateError, match="Query 'q'"):
            compile_("SELECT {fields[9]}")


class TestQueryDefinition:
    """Query entries as they appear in configuration"""

    def test_mapping_with_type_name_validators(self):
        compiled = compile_({
            "query": "SELECT * FROM {table} WHERE {fields[0]} > {min}",
            "validators": {"min": "number"},
            "preprocessor": {"min": "number"},
        })
        assert compiled.validators["min"]("5")
        assert not compiled.validators["min"]("abc")
        assert compiled.preprocessor["min"]("5") == 5.0

    def test_callable_entries_kept(self):
        check = lambda v: v == "ok"
        compiled = compile_({"query": "SELECT {x}", "validators": {"x": check}})
        assert compiled.validators["x"] is check

    def test_template_key_alias(self):
        compiled = compile_({"template": "SELECT * FROM {table}"})
        assert compiled.sql == "SELECT * FROM data"

    def test_missing_template(self):
        with pytest.raises(TemplateError):
            compile_({"validators": {}})

    def test_non_callable_validator(self):
        with pytest.raises(ConfigurationError):
            compile_({"query": "SELECT {x}", "validators": {"x": 5}})

    def test_non_callable_serializer(self):
        with pytest.raises(ConfigurationError):
            compile_({"query": "SELECT 1", "serializer": "rows"})

    def test_unsupported_definition(self):
        with pytest.raises(ConfigurationError):
            compile_(42)

    def test_definition_object_passes_through(self):
        definition = QueryDefinition(template="SELECT * FROM {table}")
        assert QueryDefinition.from_config(definition) is definition


class TestSerializer:
    """Result shaping"""

    def test_no_serializer_returns_rows(self):
        compiled = compile_("SELECT 1")
        rows = [{"a": 1}]
        assert compiled.apply_serializer(rows) is rows

    def test_serializer_applied(self):
        compiled = compile_({"query": "SELECT 1", "serializer": lambda rows: len(rows)})
        assert compiled.apply_serializer([{}, {}]) == 2
