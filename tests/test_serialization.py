"""
Tests for serialization and deserialization of specmodel objects.

These tests ensure lossless JSON/YAML round-trip using the explicit
serialization functions in `specmodel.serialization`.
"""

import pytest

from specmodel.constraints import (
    BindingStrength,
    BooleanConstraint,
    CardConstraint,
    CodeConstraint,
    IncludesCodeConstraint,
    IncludesTypeConstraint,
    TypeConstraint,
    ValueSetConstraint,
)
from specmodel.examples import FOOBAR, build_example_specifications
from specmodel.identifiers import Identifier, PrimitiveIdentifier, primitive
from specmodel.serialization import (
    constraint_from_dict,
    constraint_to_dict,
    element_from_dict,
    element_to_dict,
    identifier_from_dict,
    specifications_from_dict,
    specifications_from_json,
    specifications_from_yaml,
    specifications_to_dict,
    specifications_to_json,
    specifications_to_yaml,
    value_from_dict,
    value_to_dict,
)
from specmodel.values import TBD, Cardinality, IdentifiableValue


SIMPLE = Identifier("shr.test", "Simple")


def assert_same_registry(a, b):
    assert [ns.name for ns in a.namespaces] == [ns.name for ns in b.namespaces]
    assert len(a) == len(b)
    for de in a:
        assert b.find(de.identifier) == de


def test_dict_roundtrip():
    """Every fixture element survives a dict round-trip."""
    specs = build_example_specifications()
    restored = specifications_from_dict(specifications_to_dict(specs))
    assert_same_registry(specs, restored)


def test_json_roundtrip():
    specs = build_example_specifications()
    restored = specifications_from_json(specifications_to_json(specs))
    assert_same_registry(specs, restored)


def test_yaml_roundtrip():
    specs = build_example_specifications()
    restored = specifications_from_yaml(specifications_to_yaml(specs))
    assert_same_registry(specs, restored)


def test_parents_stay_identifiers():
    """based_on serializes as names plus TBD placeholders."""
    specs = build_example_specifications()
    d = element_to_dict(specs.find(Identifier("shr.test", "NotDoneDerivative")))
    assert d["based_on"][0] == {
        "type": "tbd", "text": "An undetermined parent.", "cardinality": None, "constraints": [],
    }
    assert d["based_on"][2] == {"namespace": "shr.test", "name": "ValuelessElement"}
    restored = element_from_dict(d)
    assert isinstance(restored.based_on[0], TBD)
    assert restored.parent == Identifier("shr.test", "ValuelessElement")


def test_primitive_identifier_restored():
    """Primitive identifiers come back as PrimitiveIdentifier."""
    restored = identifier_from_dict({"namespace": "primitive", "name": "string"})
    assert isinstance(restored, PrimitiveIdentifier)
    assert restored == primitive("string")


@pytest.mark.parametrize("constraint", [
    CardConstraint(Cardinality(1, 1), (SIMPLE,)),
    TypeConstraint(SIMPLE, on_value=True),
    IncludesTypeConstraint(SIMPLE, Cardinality(0, 0)),
    ValueSetConstraint("http://vs/a", binding_strength=BindingStrength.EXAMPLE),
    CodeConstraint(FOOBAR),
    BooleanConstraint(False),
    IncludesCodeConstraint(FOOBAR, (SIMPLE,)),
])
def test_constraint_variants(constraint):
    """Each constraint variant keeps its fields and path."""
    assert constraint_from_dict(constraint_to_dict(constraint)) == constraint


def test_unbounded_cardinality():
    """An open maximum is kept as null."""
    v = IdentifiableValue(SIMPLE).with_min_max(0)
    d = value_to_dict(v)
    assert d["cardinality"] == {"min": 0, "max": None}
    assert value_from_dict(d) == v


def test_unknown_value_tag():
    with pytest.raises(TypeError):
        value_from_dict({"type": "mystery"})


def test_unknown_constraint_tag():
    with pytest.raises(TypeError):
        constraint_from_dict({"type": "mystery", "path": []})


def test_unsupported_object():
    with pytest.raises(TypeError):
        value_to_dict("not a value")
