"""
Unit tests for shape normalization and JSON path helpers.

Includes property-based testing with hypothesis for the array-or-object law.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from edi_canon.core.normalize import as_node_list, node_at, text_or_none, value_at

json_scalars = st.one_of(st.none(), st.booleans(), st.integers(), st.text(max_size=10))
json_objects = st.dictionaries(st.text(min_size=1, max_size=8), json_scalars, max_size=5)


@pytest.mark.unit
class TestAsNodeList:
    """Tests for as_node_list"""

    def test_none_is_empty(self):
        assert as_node_list(None) == []

    def test_bare_object_is_wrapped(self):
        node = {"LineItemId": "1"}
        assert as_node_list(node) == [node]

    def test_array_order_is_preserved(self):
        nodes = [{"LineItemId": "2"}, {"LineItemId": "1"}, {"LineItemId": "3"}]
        assert as_node_list(nodes) == nodes

    def test_array_skips_null_and_scalar_elements(self):
        assert as_node_list([None, {"a": "1"}, "text", 5]) == [{"a": "1"}]

    def test_scalar_is_empty(self):
        assert as_node_list("SDQ") == []
        assert as_node_list(12) == []

    def test_empty_array_and_object(self):
        assert as_node_list([]) == []
        assert as_node_list({}) == [{}]

    @given(json_objects)
    def test_property_object_equals_single_element_array(self, node):
        """Property test: a bare object normalizes like a one-element array"""
        assert as_node_list(node) == as_node_list([node])

    @given(st.lists(json_objects, max_size=5))
    def test_property_arrays_of_objects_are_unchanged(self, nodes):
        """Property test: arrays of objects pass through in order"""
        assert as_node_list(nodes) == nodes


@pytest.mark.unit
class TestPaths:
    """Tests for node_at / value_at"""

    document = {
        "PurchaseOrderHeader": {
            "PurchaseOrderNumber": 7784512,
            "Flag": True,
            "PurchaseOrder": {"DepartmentNumber": "412"},
        },
        "Sizes": ["MISSES", "M", "REG"],
    }

    def test_nested_object_path(self):
        assert value_at(self.document, "PurchaseOrderHeader.PurchaseOrder.DepartmentNumber") == "412"

    def test_numbers_render_as_text(self):
        assert value_at(self.document, "PurchaseOrderHeader.PurchaseOrderNumber") == "7784512"

    def test_booleans_render_lowercase(self):
        assert value_at(self.document, "PurchaseOrderHeader.Flag") == "true"

    def test_array_index(self):
        assert value_at(self.document, "Sizes[1]") == "M"

    def test_index_out_of_range(self):
        assert value_at(self.document, "Sizes[5]") is None

    def test_index_on_non_array(self):
        assert value_at(self.document, "PurchaseOrderHeader[0]") is None

    def test_missing_step(self):
        assert node_at(self.document, "PurchaseOrderHeader.Missing.Value") is None

    def test_containers_are_not_scalars(self):
        assert node_at(self.document, "PurchaseOrderHeader.PurchaseOrder") == {"DepartmentNumber": "412"}
        assert value_at(self.document, "PurchaseOrderHeader.PurchaseOrder") is None

    def test_empty_path(self):
        assert node_at(self.document, None) is None
        assert value_at(self.document, "") is None

    def test_invalid_path_segment(self):
        with pytest.raises(ValueError):
            node_at(self.document, "Sizes[x]")


@pytest.mark.unit
@pytest.mark.parametrize("value,expected", [
    (None, None),
    ("", None),
    ("   ", None),
    (" NAVY ", "NAVY"),
])
def test_text_or_none(value, expected):
    assert text_or_none(value) == expected
