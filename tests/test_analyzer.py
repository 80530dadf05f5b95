"""
Tests for the Specifications Analyzer.

Tests verify that the analyzer correctly:
    - Inventories namespaces, entries, abstract elements and groups
    - Measures inheritance depth
    - Finds incomplete elements, unresolved references and cycles
    - Flags warnings
"""

from specmodel.analyzer import analyze_specifications
from specmodel.builders import DataElementBuilder
from specmodel.config import Settings
from specmodel.constraints import CardConstraint, TypeConstraint
from specmodel.diagnostics import DiagnosticCollector, DiagnosticKind
from specmodel.examples import (
    add_cyclic_elements,
    add_group,
    add_simple_child_element,
    add_simple_element,
    add_tbd_element,
    build_example_specifications,
)
from specmodel.identifiers import Identifier
from specmodel.model import Specifications
from specmodel.values import Cardinality, IdentifiableValue


SETTINGS = Settings(_env_file=None)


def test_example_specifications_inventory():
    """Counts match the fixture registry."""
    specs = build_example_specifications()
    report = analyze_specifications(specs, settings=SETTINGS)

    assert report.total_namespaces == 2
    assert report.total_elements == len(specs)
    assert report.total_entries == report.total_elements - 1  # Plain is not an entry
    assert report.total_abstract == 1
    assert report.total_groups == 0
    assert report.elements_per_namespace["shr.other.test"] == 1
    assert report.max_inheritance_depth == 1


def test_example_specifications_only_incomplete():
    """The fixture registry resolves cleanly apart from its TBD elements."""
    report = analyze_specifications(build_example_specifications(), settings=SETTINGS)

    assert report.failed_paths == 0
    assert report.resolved_paths > report.total_elements
    assert report.unresolved_references == set()
    assert report.cyclic_elements == set()
    assert report.incomplete_elements == {"shr.test.NotDone", "shr.test.NotDoneDerivative"}
    assert set(report.diagnostics_by_kind) == {"Incomplete"}
    assert len(report.warnings) == 1
    assert report.warnings[0].startswith("Incomplete (TBD) elements")


def test_unresolved_references():
    """Fields naming unregistered elements are reported."""
    specs = Specifications()
    add_group(specs, "shr.test", "shr.other.test", add_sub_elements=False)
    report = analyze_specifications(specs, settings=SETTINGS)

    assert report.unresolved_references == {"shr.test.Group"}
    assert report.failed_paths == 3
    assert report.diagnostics_by_kind["UnresolvedReference"] == 3
    assert any("Unresolved references" in w for w in report.warnings)


def test_cyclic_inheritance():
    """Both members of a cycle are listed."""
    specs = Specifications()
    add_cyclic_elements(specs, "shr.test")
    report = analyze_specifications(specs, settings=SETTINGS)

    assert report.cyclic_elements == {"shr.test.CycleA", "shr.test.CycleB"}
    assert any(w.startswith("Cyclic inheritance") for w in report.warnings)


def test_constraint_paths_resolved():
    """Declared constraint paths are resolved and violations counted."""
    specs = Specifications()
    add_simple_element(specs, "shr.test")
    add_simple_child_element(specs, "shr.test")
    specs.add(
        DataElementBuilder(Identifier("shr.test", "Holder"), is_entry=True)
        .with_field(
            IdentifiableValue(Identifier("shr.test", "Simple")).with_constraint(
                TypeConstraint(Identifier("shr.test", "SimpleChild"), path=(Identifier("shr.test", "Missing"),))
            )
        )
        .build()
    )
    report = analyze_specifications(specs, settings=SETTINGS)

    assert report.diagnostics_by_kind["AmbiguousOrUnresolvedPath"] == 1
    assert any("Ambiguous or unresolved paths: 1" == w for w in report.warnings)


def test_empty_namespace_warning():
    """Namespaces without elements are flagged."""
    specs = Specifications()
    specs.add_namespace("shr.empty")
    add_simple_element(specs, "shr.test")
    report = analyze_specifications(specs, settings=SETTINGS)

    assert report.elements_per_namespace == {"shr.empty": 0, "shr.test": 1}
    assert "Empty namespaces: shr.empty" in report.warnings


def test_collector_receives_diagnostics():
    """A caller-supplied collector sees every recorded diagnostic."""
    specs = Specifications()
    add_group(specs, "shr.test", "shr.other.test", add_sub_elements=False)
    collector = DiagnosticCollector()
    analyze_specifications(specs, collector, settings=SETTINGS)
    assert collector.has_errors()


def test_no_warnings_clean_registry():
    """A small clean registry produces no warnings."""
    specs = Specifications()
    add_simple_element(specs, "shr.test")
    add_simple_child_element(specs, "shr.test")
    report = analyze_specifications(specs, settings=SETTINGS)

    assert report.warnings == []
    assert report.max_inheritance_depth == 1
    assert report.deepest_element == "shr.test.SimpleChild"


def test_incomplete_counted_by_kind():
    """TBD nodes show up in the diagnostic counts without failing any path."""
    specs = Specifications()
    add_tbd_element(specs, "shr.test")
    collector = DiagnosticCollector()
    report = analyze_specifications(specs, collector, settings=SETTINGS)

    # value and TBD fields of NotDone all sit at the element itself
    assert report.diagnostics_by_kind["Incomplete"] == 1
    assert report.failed_paths == 0
    assert not collector.has_errors()
    assert collector.of_kind(DiagnosticKind.INCOMPLETE)


def test_cycle_reached_through_field():
    """Only the members of a cycle are cyclic, not elements that descend into them."""
    specs = Specifications()
    add_cyclic_elements(specs, "shr.test")
    specs.add(
        DataElementBuilder(Identifier("shr.test", "Holder"), is_entry=True)
        .with_field(
            IdentifiableValue(Identifier("shr.test", "CycleA")).with_constraint(
                CardConstraint(Cardinality(1, 1), path=(Identifier("shr.test", "Simple"),))
            )
        )
        .build()
    )
    report = analyze_specifications(specs, settings=SETTINGS)

    assert report.cyclic_elements == {"shr.test.CycleA", "shr.test.CycleB"}
    assert report.diagnostics_by_kind["CyclicInheritance"] >= 3
