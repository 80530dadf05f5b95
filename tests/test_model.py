"""
Tests for DataElement, the element builder and the Specifications registry.

These tests verify:
    - Builder drafts freeze into immutable elements
    - Based-on parents may be identifiers or TBD placeholders
    - Registry inserts are idempotent (last write wins)
    - Namespaces are created lazily
    - Retrieval methods
"""

import pytest

from specmodel.builders import DataElementBuilder
from specmodel.exceptions import BuilderError
from specmodel.identifiers import Concept, Identifier, Namespace, primitive
from specmodel.model import DataElement, Specifications
from specmodel.values import TBD, ChoiceValue, IdentifiableValue


SIMPLE = Identifier("shr.test", "Simple")
GROUP = Identifier("shr.test", "Group")


def build_simple(description="It is a simple element"):
    return (
        DataElementBuilder(SIMPLE, is_entry=True)
        .with_description(description)
        .with_value(IdentifiableValue(primitive("string")).with_min_max(1, 1))
        .build()
    )


class TestDataElementBuilder:
    """Test building data elements."""

    def test_build_simple_element(self):
        """Should freeze every chained setting."""
        de = (
            DataElementBuilder(SIMPLE, is_entry=True)
            .with_description("It is a simple element")
            .with_concept(Concept("http://foo.org", "bar", "Foobar"))
            .with_value(IdentifiableValue(primitive("string")).with_min_max(1, 1))
            .build()
        )
        assert isinstance(de, DataElement)
        assert de.identifier == SIMPLE
        assert de.is_entry
        assert not de.is_abstract
        assert de.description == "It is a simple element"
        assert de.concepts == (Concept("http://foo.org", "bar", "Foobar"),)
        assert de.value.identifier == primitive("string")
        assert de.fields == ()

    def test_fields_keep_order(self):
        """Fields are stored in declaration order."""
        coded = Identifier("shr.test", "Coded")
        de = (
            DataElementBuilder(GROUP)
            .with_field(IdentifiableValue(SIMPLE).with_min_max(1, 1))
            .with_field(IdentifiableValue(coded).with_min_max(0, 1))
            .build()
        )
        assert [f.identifier for f in de.fields] == [SIMPLE, coded]
        assert de.get_field(coded).cardinality.max == 1
        assert de.get_field(Identifier("shr.test", "Missing")) is None

    def test_based_on_identifier_and_tbd(self):
        """Parents may mix identifiers and TBD placeholders."""
        de = (
            DataElementBuilder(Identifier("shr.test", "NotDoneDerivative"))
            .with_based_on(TBD("An undetermined parent."))
            .with_based_on(TBD())
            .with_based_on(Identifier("shr.test", "ValuelessElement"))
            .build()
        )
        assert len(de.based_on) == 3
        assert de.parents == [Identifier("shr.test", "ValuelessElement")]
        assert de.parent == Identifier("shr.test", "ValuelessElement")
        assert de.has_tbd_parent

    def test_no_parent(self):
        """Elements without based-on have no parent."""
        de = build_simple()
        assert de.parent is None
        assert not de.has_tbd_parent

    def test_tbd_concept(self):
        """Concept placeholders are allowed."""
        de = DataElementBuilder(SIMPLE).with_concept(TBD("Not sure of the concept")).build()
        assert isinstance(de.concepts[0], TBD)

    def test_invalid_based_on_rejected(self):
        """Parents must be identifiers or TBD."""
        with pytest.raises(BuilderError):
            DataElementBuilder(SIMPLE).with_based_on("shr.test.Group")

    def test_primitive_identifier_rejected(self):
        """Elements cannot take a primitive name."""
        with pytest.raises(BuilderError):
            DataElementBuilder(primitive("string"))

    def test_built_element_is_immutable(self):
        """Frozen elements cannot be edited after build."""
        de = build_simple()
        with pytest.raises(AttributeError):
            de.description = "changed"

    def test_is_group(self):
        """Non-entry elements with fields are groups."""
        group = DataElementBuilder(GROUP).with_field(IdentifiableValue(SIMPLE)).build()
        entry = DataElementBuilder(GROUP, is_entry=True).with_field(IdentifiableValue(SIMPLE)).build()
        assert group.is_group
        assert not entry.is_group

    def test_choice_field_not_found_by_identifier(self):
        """get_field only returns directly named fields."""
        de = (
            DataElementBuilder(GROUP)
            .with_field(ChoiceValue().with_option(IdentifiableValue(SIMPLE)))
            .build()
        )
        assert de.get_field(SIMPLE) is None


class TestSpecifications:
    """Test the registry."""

    def test_empty_registry(self):
        """A new registry holds nothing."""
        specs = Specifications()
        assert len(specs) == 0
        assert specs.namespaces == []

    def test_add_namespace_idempotent(self):
        """Adding a namespace twice keeps the first."""
        specs = Specifications()
        first = specs.add_namespace(Namespace("shr.test", "Test namespace"))
        second = specs.add_namespace("shr.test")
        assert first is second
        assert len(specs.namespaces) == 1
        assert specs.get_namespace("shr.test").description == "Test namespace"

    def test_add_element_creates_namespace(self):
        """Elements bring their namespace with them."""
        specs = Specifications()
        specs.add_element(build_simple())
        assert specs.get_namespace("shr.test") is not None

    def test_add_element_last_write_wins(self):
        """Adding the same identifier twice leaves one element, the latest."""
        specs = Specifications()
        specs.add_element(build_simple("first"))
        specs.add_element(build_simple("second"))
        assert len(specs) == 1
        assert specs.find(SIMPLE).description == "second"

    def test_find_missing_returns_none(self):
        """Not found is a value, not an error."""
        specs = Specifications()
        assert specs.find(Identifier("shr.test", "Missing")) is None
        assert specs.find(None) is None

    def test_find_primitive_returns_none(self):
        """Primitives never resolve to elements."""
        specs = Specifications()
        assert specs.find(primitive("string")) is None

    def test_elements_in_namespace(self):
        """Elements are listed per namespace."""
        specs = Specifications()
        specs.add(build_simple(), DataElementBuilder(Identifier("shr.other.test", "Simple")).build())
        assert [de.identifier.namespace for de in specs.elements_in_namespace("shr.test")] == ["shr.test"]
        assert len(specs.elements_in_namespace(Namespace("shr.other.test"))) == 1
        assert specs.elements_in_namespace("shr.unknown") == []

    def test_contains_and_iter(self):
        """Registry supports membership and iteration."""
        specs = Specifications()
        specs.add(build_simple())
        assert SIMPLE in specs
        assert GROUP not in specs
        assert [de.identifier for de in specs] == [SIMPLE]
