"""
Fixture builders for the canonical test elements.

Each add_* function registers one element (plus, unless told otherwise,
the elements it depends on) into a Specifications registry and returns
the element it is named after. Exporters and the resolver tests share
these shapes.
"""
from specmodel.builders import DataElementBuilder
from specmodel.constraints import (
    IncludesCodeConstraint,
    IncludesTypeConstraint,
    TypeConstraint,
    ValueSetConstraint,
)
from specmodel.identifiers import Concept, Identifier, primitive
from specmodel.model import DataElement, Specifications
from specmodel.values import TBD, Cardinality, ChoiceValue, IdentifiableValue, RefValue

CODED_VS = "http://standardhealthrecord.org/test/vs/Coded"
CODE_CHOICE_VS = "http://standardhealthrecord.org/test/vs/CodeChoice"

FOOBAR = Concept("http://foo.org", "bar", "Foobar")
BOOFAR = Concept("http://boo.org", "far", "Boofar")


def _id(namespace: str, name: str) -> Identifier:
    return Identifier(namespace, name)


def add_simple_element(specs: Specifications, ns: str) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "Simple"), is_entry=True)
        .with_description("It is a simple element")
        .with_concept(FOOBAR)
        .with_value(IdentifiableValue(primitive("string")).with_min_max(1, 1))
        .build()
    )
    specs.add(de)
    return de


def add_simple_child_element(specs: Specifications, ns: str) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "SimpleChild"), is_entry=True)
        .with_based_on(_id(ns, "Simple"))
        .with_description("A derivative of the simple type.")
        .with_value(IdentifiableValue(primitive("string")).with_min_max(1, 1))
        .build()
    )
    specs.add(de)
    return de


def add_coded_element(specs: Specifications, ns: str) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "Coded"), is_entry=True)
        .with_description("It is a coded element")
        .with_value(
            IdentifiableValue(primitive("code")).with_min_max(1, 1)
            .with_constraint(ValueSetConstraint(CODED_VS))
        )
        .build()
    )
    specs.add(de)
    return de


def add_simple_reference(specs: Specifications, ns: str) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "SimpleReference"), is_entry=True)
        .with_description("It is a reference to a simple element")
        .with_value(RefValue(_id(ns, "Simple")).with_min_max(1, 1))
        .build()
    )
    specs.add(de)
    return de


def add_reference_choice(specs: Specifications, ns: str, other_ns: str) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "ReferenceChoice"), is_entry=True)
        .with_description("It is a reference to one of a few types")
        .with_value(
            ChoiceValue().with_min_max(1, 1)
            .with_option(RefValue(_id(other_ns, "Simple")).with_min_max(1, 1))
            .with_option(RefValue(_id(ns, "Coded")).with_min_max(1, 1))
        )
        .build()
    )
    specs.add(de)
    return de


def add_element_value(specs: Specifications, ns: str, add_sub_elements: bool = True) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "ElementValue"), is_entry=True)
        .with_description("It is an element with an element value")
        .with_value(IdentifiableValue(_id(ns, "Simple")).with_min_max(1, 1))
        .build()
    )
    specs.add(de)
    if add_sub_elements:
        add_simple_element(specs, ns)
    return de


def add_two_deep_element_value(specs: Specifications, ns: str, add_sub_elements: bool = True) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "TwoDeepElementValue"), is_entry=True)
        .with_description("It is an element with a two-deep element value")
        .with_value(IdentifiableValue(_id(ns, "ElementValue")).with_min_max(1, 1))
        .build()
    )
    specs.add(de)
    if add_sub_elements:
        add_element_value(specs, ns)
    return de


def add_foreign_element_value(specs: Specifications, ns: str, other_ns: str) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "ForeignElementValue"), is_entry=True)
        .with_description("It is an element with a foreign element value")
        .with_value(IdentifiableValue(_id(other_ns, "Simple")).with_min_max(1, 1))
        .build()
    )
    specs.add(de)
    add_simple_element(specs, other_ns)
    return de


def add_choice(specs: Specifications, ns: str, add_sub_elements: bool = True) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "Choice"), is_entry=True)
        .with_description("It is an element with a choice")
        .with_value(
            ChoiceValue().with_min_max(1, 1)
            .with_option(IdentifiableValue(primitive("string")).with_min_max(1, 1))
            .with_option(
                IdentifiableValue(primitive("code")).with_min_max(0)
                .with_constraint(ValueSetConstraint(CODE_CHOICE_VS))
            )
            .with_option(IdentifiableValue(_id("shr.test", "Coded")).with_min_max(1, 1))
        )
        .build()
    )
    specs.add(de)
    if add_sub_elements:
        add_coded_element(specs, ns)
    return de


def add_choice_of_choice(specs: Specifications, ns: str) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "ChoiceOfChoice"), is_entry=True)
        .with_description("It is an element with a choice containing a choice")
        .with_value(
            ChoiceValue().with_min_max(1, 1)
            .with_option(IdentifiableValue(primitive("string")).with_min_max(1, 1))
            .with_option(
                ChoiceValue().with_min_max(1, 1)
                .with_option(IdentifiableValue(primitive("integer")).with_min_max(1, 1))
                .with_option(IdentifiableValue(primitive("decimal")).with_min_max(1, 1))
            )
            .with_option(
                IdentifiableValue(primitive("code")).with_min_max(0)
                .with_constraint(ValueSetConstraint(CODE_CHOICE_VS))
            )
        )
        .build()
    )
    specs.add(de)
    return de


def _add_group_dependencies(specs: Specifications, ns: str, other_ns: str) -> None:
    add_simple_element(specs, ns)
    add_coded_element(specs, ns)
    add_simple_element(specs, other_ns)
    add_foreign_element_value(specs, ns, other_ns)
    add_element_value(specs, ns)


def add_group(specs: Specifications, ns: str, other_ns: str, add_sub_elements: bool = True) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "Group"), is_entry=True)
        .with_description("It is a group of elements")
        .with_concept(FOOBAR)
        .with_concept(BOOFAR)
        .with_field(IdentifiableValue(_id("shr.test", "Simple")).with_min_max(1, 1))
        .with_field(IdentifiableValue(_id("shr.test", "Coded")).with_min_max(0, 1))
        .with_field(IdentifiableValue(_id("shr.test", "ElementValue")).with_min_max(0))
        .build()
    )
    specs.add(de)
    if add_sub_elements:
        _add_group_dependencies(specs, ns, other_ns)
    return de


def add_group_with_choice_of_choice(
    specs: Specifications, ns: str, other_ns: str, add_sub_elements: bool = True
) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "GroupWithChoiceOfChoice"), is_entry=True)
        .with_value(
            ChoiceValue().with_min_max(0, 2)
            .with_option(IdentifiableValue(_id("shr.other.test", "Simple")).with_min_max(1, 1))
            .with_option(
                ChoiceValue().with_min_max(1, 1)
                .with_option(IdentifiableValue(_id("shr.test", "ForeignElementValue")).with_min_max(1))
                .with_option(IdentifiableValue(_id("shr.test", "ElementValue")).with_min_max(1))
            )
        )
        .with_description("It is a group of elements with a choice containing a choice")
        .with_field(IdentifiableValue(_id("shr.test", "Simple")).with_min_max(1, 1))
        .with_field(IdentifiableValue(_id("shr.test", "Coded")).with_min_max(0, 1))
        .build()
    )
    specs.add(de)
    if add_sub_elements:
        _add_group_dependencies(specs, ns, other_ns)
    return de


def add_group_path_clash(specs: Specifications, ns: str, other_ns: str, add_sub_elements: bool = True) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "GroupPathClash"), is_entry=True)
        .with_description("It is a group of elements with clashing names")
        .with_field(IdentifiableValue(_id("shr.test", "Simple")).with_min_max(1, 1))
        .with_field(IdentifiableValue(_id("shr.other.test", "Simple")).with_min_max(0, 1))
        .build()
    )
    specs.add(de)
    if add_sub_elements:
        add_simple_element(specs, ns)
        add_simple_element(specs, other_ns)
    return de


def add_group_derivative(specs: Specifications, ns: str, other_ns: str, add_sub_elements: bool = True) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "GroupDerivative"), is_entry=True)
        .with_based_on(_id("shr.test", "Group"))
        .with_description("It is a derivative of a group of elements")
        .with_value(IdentifiableValue(primitive("string")).with_min_max(1, 1))
        .build()
    )
    specs.add(de)
    if add_sub_elements:
        add_group(specs, ns, other_ns, add_sub_elements)
    return de


def add_tbd_element(specs: Specifications, ns: str) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "NotDone"), is_entry=True)
        .with_description("It is an unfinished element")
        .with_concept(FOOBAR)
        .with_value(TBD("An undetermined value.").with_min_max(1, 1))
        .with_field(TBD("An undetermined list field.").with_min_max(0))
        .with_field(TBD("An undetermined singular field.").with_min_max(1, 1))
        .with_field(TBD().with_min_max(1))
        .build()
    )
    specs.add(de)
    return de


def add_tbd_element_derivative(specs: Specifications, ns: str, add_sub_elements: bool = True) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "NotDoneDerivative"), is_entry=True)
        .with_based_on(TBD("An undetermined parent."))
        .with_based_on(TBD())
        .with_based_on(_id("shr.test", "ValuelessElement"))
        .with_description("It is an unfinished derivative element")
        .with_concept(TBD("Not sure of the concept"))
        .with_value(TBD("An undetermined list value.").with_min_max(0))
        .with_field(TBD("An undetermined singular field.").with_min_max(1, 1))
        .build()
    )
    specs.add(de)
    if add_sub_elements:
        specs.add(
            DataElementBuilder(_id(ns, "ValuelessElement"), is_entry=True)
            .with_description("An element with no value.")
            .with_field(IdentifiableValue(_id("shr.test", "Simple")).with_min_max(1, 1))
            .build()
        )
        add_simple_element(specs, ns)
    return de


def add_abstract_and_plain_elements(specs: Specifications, ns: str, add_sub_elements: bool = True) -> DataElement:
    de = (
        DataElementBuilder(_id(ns, "AbstractAndPlainGroup"), is_entry=True, is_abstract=True)
        .with_description("It is an abstract group of elements")
        .with_concept(FOOBAR)
        .with_field(IdentifiableValue(_id("shr.test", "Simple")).with_min_max(1, 1))
        .with_field(IdentifiableValue(_id("shr.test", "Plain")).with_min_max(1, 1))
        .build()
    )
    specs.add(de)
    if add_sub_elements:
        add_simple_element(specs, ns)
        specs.add(
            DataElementBuilder(_id(ns, "Plain"))
            .with_description("It is not an entry element")
            .with_concept(FOOBAR)
            .with_value(IdentifiableValue(primitive("string")).with_min_max(1, 1))
            .build()
        )
    return de


def add_type_constrained_elements(
    specs: Specifications, ns: str, other_ns: str, add_sub_elements: bool = True
) -> DataElement:
    """GroupDerivative narrowing Simple to SimpleChild, and ElementValue's value likewise."""
    add_simple_child_element(specs, ns)
    de = (
        DataElementBuilder(_id(ns, "GroupDerivative"), is_entry=True)
        .with_based_on(_id("shr.test", "Group"))
        .with_description("It is a derivative of a group of elements with type constraints.")
        .with_field(
            IdentifiableValue(_id(ns, "Simple")).with_min_max(1, 1)
            .with_constraint(TypeConstraint(_id(ns, "SimpleChild")))
        )
        .with_field(
            IdentifiableValue(_id(ns, "ElementValue")).with_min_max(0)
            .with_constraint(TypeConstraint(_id(ns, "SimpleChild"), on_value=True))
        )
        .build()
    )
    specs.add(de)
    if add_sub_elements:
        add_group(specs, ns, other_ns, add_sub_elements)
    return de


def add_type_constrained_elements_with_path(specs: Specifications, ns: str, add_sub_elements: bool = True) -> DataElement:
    """ConstrainedPath narrows the Simple two levels below its TwoDeepElementField."""
    element_field = (
        DataElementBuilder(_id(ns, "ElementField"), is_entry=True)
        .with_description("It is an element with a field.")
        .with_field(IdentifiableValue(_id(ns, "Simple")).with_min_max(1, 1))
        .build()
    )
    two_deep = (
        DataElementBuilder(_id(ns, "TwoDeepElementField"), is_entry=True)
        .with_description("It is an element with a two-deep element field")
        .with_field(IdentifiableValue(_id(ns, "ElementField")).with_min_max(1, 1))
        .build()
    )
    nested = (
        DataElementBuilder(_id(ns, "NestedField"), is_entry=True)
        .with_description("It is an element with a nested field.")
        .with_field(IdentifiableValue(_id(ns, "TwoDeepElementField")))
        .build()
    )
    constrained = (
        DataElementBuilder(_id(ns, "ConstrainedPath"), is_entry=True)
        .with_based_on(_id("shr.test", "NestedField"))
        .with_description("It derives an element with a nested field.")
        .with_field(
            IdentifiableValue(_id(ns, "TwoDeepElementField")).with_constraint(
                TypeConstraint(_id(ns, "SimpleChild"), path=(_id(ns, "ElementField"), _id(ns, "Simple")))
            )
        )
        .build()
    )
    specs.add(element_field, two_deep, nested, constrained)
    if add_sub_elements:
        add_simple_element(specs, ns)
        add_simple_child_element(specs, ns)
    return constrained


def add_includes_type_constraints(specs: Specifications, ns: str, add_sub_elements: bool = True) -> DataElement:
    simple_child2 = (
        DataElementBuilder(_id(ns, "SimpleChild2"), is_entry=True)
        .with_based_on(_id(ns, "Simple"))
        .with_description("A derivative of the simple type.")
        .with_value(IdentifiableValue(primitive("string")).with_min_max(1, 1))
        .build()
    )
    de = (
        DataElementBuilder(_id(ns, "IncludesTypesList"), is_entry=True)
        .with_description("An entry with a includes types constraints.")
        .with_value(
            IdentifiableValue(_id(ns, "Simple")).with_min_max(0)
            .with_constraint(IncludesTypeConstraint(_id(ns, "SimpleChild"), Cardinality(0, 1)))
            .with_constraint(IncludesTypeConstraint(_id(ns, "SimpleChild2"), Cardinality(0, 2)))
        )
        .build()
    )
    specs.add(simple_child2, de)
    if add_sub_elements:
        add_simple_element(specs, ns)
        add_simple_child_element(specs, ns)
    return de


def add_includes_code_on_nested_field(specs: Specifications, ns: str, add_sub_elements: bool = True) -> DataElement:
    """
    IncludesCodeList holds a list of CodedHolder, and requires a code on
    each holder's single Coded field. The multiplicity lands on the list.
    """
    holder = (
        DataElementBuilder(_id(ns, "CodedHolder"), is_entry=True)
        .with_description("An element holding exactly one coded field.")
        .with_field(IdentifiableValue(_id(ns, "Coded")).with_min_max(1, 1))
        .build()
    )
    de = (
        DataElementBuilder(_id(ns, "IncludesCodeList"), is_entry=True)
        .with_description("An entry with an includes code constraint below its list.")
        .with_field(
            IdentifiableValue(_id(ns, "CodedHolder")).with_min_max(0)
            .with_constraint(IncludesCodeConstraint(FOOBAR, path=(_id(ns, "Coded"),)))
        )
        .build()
    )
    specs.add(holder, de)
    if add_sub_elements:
        add_coded_element(specs, ns)
    return de


def add_cyclic_elements(specs: Specifications, ns: str) -> DataElement:
    """CycleA is based on CycleB, which is based on CycleA."""
    a = (
        DataElementBuilder(_id(ns, "CycleA"), is_entry=True)
        .with_based_on(_id(ns, "CycleB"))
        .with_value(IdentifiableValue(primitive("string")).with_min_max(1, 1))
        .build()
    )
    b = (
        DataElementBuilder(_id(ns, "CycleB"), is_entry=True)
        .with_based_on(_id(ns, "CycleA"))
        .with_field(IdentifiableValue(_id(ns, "Simple")).with_min_max(0, 1))
        .build()
    )
    specs.add(a, b)
    add_simple_element(specs, ns)
    return a


def build_example_specifications() -> Specifications:
    """Registry holding every fixture at once (type-constrained GroupDerivative wins)."""
    specs = Specifications()
    add_simple_reference(specs, "shr.test")
    add_reference_choice(specs, "shr.test", "shr.other.test")
    add_two_deep_element_value(specs, "shr.test")
    add_choice(specs, "shr.test")
    add_choice_of_choice(specs, "shr.test")
    add_group_with_choice_of_choice(specs, "shr.test", "shr.other.test")
    add_group_path_clash(specs, "shr.test", "shr.other.test")
    add_tbd_element(specs, "shr.test")
    add_tbd_element_derivative(specs, "shr.test")
    add_abstract_and_plain_elements(specs, "shr.test")
    add_type_constrained_elements(specs, "shr.test", "shr.other.test")
    add_type_constrained_elements_with_path(specs, "shr.test")
    add_includes_type_constraints(specs, "shr.test")
    add_includes_code_on_nested_field(specs, "shr.test")
    return specs
