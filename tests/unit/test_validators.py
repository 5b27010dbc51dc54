"""
Unit tests for mandatory header field checks.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from edi_canon.core.normalize import value_at
from edi_canon.core.validators import RequiredFieldValidator, ValidationError

PO_NUMBER = "PurchaseOrderHeader.PurchaseOrderNumber"


def check(document, validator=None):
    validator = validator or RequiredFieldValidator(PO_NUMBER)
    validator.validate(value_at(document, PO_NUMBER), document)


class TestRequiredFieldValidator:
    """Tests for RequiredFieldValidator"""

    def test_present_field(self):
        check({"PurchaseOrderHeader": {"PurchaseOrderNumber": "7784512"}})  # Should not raise

    def test_numeric_field(self):
        check({"PurchaseOrderHeader": {"PurchaseOrderNumber": 7784512}})  # Should not raise

    def test_missing_field(self):
        with pytest.raises(ValidationError) as exc_info:
            check({"PurchaseOrderHeader": {}})

        assert "missing" in str(exc_info.value).lower()
        assert exc_info.value.field_name == PO_NUMBER

    def test_null_field(self):
        with pytest.raises(ValidationError) as exc_info:
            check({"PurchaseOrderHeader": {"PurchaseOrderNumber": None}})

        assert "missing" in str(exc_info.value).lower()

    def test_object_value(self):
        with pytest.raises(ValidationError) as exc_info:
            check({"PurchaseOrderHeader": {"PurchaseOrderNumber": {"Value": "1"}}})

        assert "not a scalar" in str(exc_info.value)

    def test_empty_string(self):
        with pytest.raises(ValidationError) as exc_info:
            check({"PurchaseOrderHeader": {"PurchaseOrderNumber": "   "}})

        assert "empty" in str(exc_info.value).lower()

    def test_empty_string_allowed_when_configured(self):
        validator = RequiredFieldValidator(PO_NUMBER, {"allow_empty_string": True})
        check({"PurchaseOrderHeader": {"PurchaseOrderNumber": ""}}, validator)  # Should not raise

    def test_rule_type(self):
        assert RequiredFieldValidator(PO_NUMBER).rule_type == "required_field"

    @given(st.text(min_size=1).filter(lambda s: s.strip() != ""))
    def test_property_any_nonempty_string_passes(self, value):
        """Property test: any non-empty, non-whitespace string should pass"""
        check({"PurchaseOrderHeader": {"PurchaseOrderNumber": value}})
