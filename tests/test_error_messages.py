"""
Tests for database error message enhancement
"""

import pytest
from utils.error_messages import enhance_error_message


class TestEnhanceErrorMessage:
    """Readable messages for common PostgreSQL errors"""

    def test_unknown_column(self):
        error = Exception('column "pressure" does not exist')
        assert enhance_error_message(error).startswith("Unknown column 'pressure'")

    def test_unknown_column_of_relation(self):
        error = Exception('column "pressure" of relation "data" does not exist')
        assert enhance_error_message(error).startswith("Unknown column 'pressure'")

    def test_unknown_table(self):
        error = Exception('relation "readings" does not exist')
        assert enhance_error_message(error) == "Unknown table 'readings'."

    def test_invalid_input_syntax(self):
        error = Exception('invalid input syntax for type double precision: "abc"')
        assert enhance_error_message(error) == "Invalid value 'abc' for type double precision."

    def test_invalid_query_argument(self):
        error = ValueError("invalid input for query argument $2: invalid input for type int4: 'x'")
        message = enhance_error_message(error)
        assert message.startswith("Invalid value for query parameter $2")

    def test_value_too_long(self):
        error = Exception("value too long for type character varying(64)")
        assert "at most 64 characters" in enhance_error_message(error)

    def test_not_null(self):
        error = Exception('null value in column "temp" of relation "data" violates not-null constraint')
        assert enhance_error_message(error) == "Required field missing: 'temp' cannot be null."

    def test_syntax_error(self):
        error = Exception('syntax error at or near "FORM"')
        assert enhance_error_message(error) == "SQL syntax error near 'FORM'."

    @pytest.mark.parametrize("text", ["connection refused", "timeout"])
    def test_unmatched_message_unchanged(self, text):
        assert enhance_error_message(Exception(text)) == text
