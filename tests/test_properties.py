"""
Cascade property extraction tests
"""

from docmodel import build_nested_map, zero_nested_map
from docmodel.cascade import extract_value

from .models import ChildRef, CascadeParent, SubChildRef


class TestBuildNestedMap:
    def test_reads_wire_names_off_a_record(self):
        parent = CascadeParent(
            bar="bar",
            number=5,
            child=ChildRef(name="child", sub_child=SubChildRef(foo="foo")),
        )

        mapping = build_nested_map(["bar", "child.name"], parent)

        assert mapping == {"bar": "bar", "child": {"name": "child"}}

    def test_path_order_does_not_matter(self):
        ref = ChildRef(id="c1", name="Foo", sub_child=SubChildRef(id="s1", foo="x"))
        paths = ["_id", "name", "subChild.foo", "subChild._id"]

        assert build_nested_map(paths, ref) == build_nested_map(list(reversed(paths)), ref)
        assert build_nested_map(paths, ref) == {
            "_id": "c1",
            "name": "Foo",
            "subChild": {"foo": "x", "_id": "s1"},
        }

    def test_mapping_source(self):
        assert build_nested_map(["childProp"], {"childProp": "Doop"}) == {"childProp": "Doop"}

    def test_missing_values_become_none(self):
        assert build_nested_map(["nope", "a.b"], {"a": {}}) == {"nope": None, "a": {"b": None}}

    def test_extract_value(self):
        ref = ChildRef(id="c1", sub_child=SubChildRef(foo="x"))
        assert extract_value(ref, "_id") == "c1"
        assert extract_value(ref, "subChild.foo") == "x"
        assert extract_value(ref, "subChild.missing") is None


class TestZeroNestedMap:
    def test_same_shape_with_zero_leaves(self):
        mapping = {
            "_id": "c1",
            "count": 4,
            "ratio": 0.5,
            "active": True,
            "tags": ["a"],
            "meta": {},
            "sub": {"foo": "x", "when": None},
        }

        assert zero_nested_map(mapping) == {
            "_id": "",
            "count": 0,
            "ratio": 0.0,
            "active": False,
            "tags": [],
            "meta": {},
            "sub": {"foo": "", "when": None},
        }
