"""
Specifications Analyzer: bulk diagnostics and inventory of a registry.

This module drives the resolution engine across a whole registry:
    - Element inventory (entries, abstract elements, groups)
    - Inheritance depth and cycles
    - Resolution of every value, field and constrained path
    - Incomplete (TBD) elements and unresolved references
    - Warning flags for exporters

IMPORTANT: This is the analysis layer. It does NOT modify the registry.
It only produces read-only reports.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from specmodel.config import Settings
from specmodel.diagnostics import Diagnostic, DiagnosticCollector, DiagnosticKind
from specmodel.identifiers import Identifier
from specmodel.model import DataElement, Specifications
from specmodel.resolver import ResolutionEngine, ResolvedNode
from specmodel.values import ChoiceValue, IdentifiableValue

logger = logging.getLogger(__name__)


@dataclass
class SpecificationsReport:
    """Comprehensive analysis report for a registry."""

    total_namespaces: int = 0
    total_elements: int = 0
    total_entries: int = 0
    total_abstract: int = 0
    total_groups: int = 0
    elements_per_namespace: Dict[str, int] = field(default_factory=dict)

    # Inheritance
    max_inheritance_depth: int = 0
    deepest_element: Optional[str] = None
    cyclic_elements: Set[str] = field(default_factory=set)

    # Resolution
    resolved_paths: int = 0
    failed_paths: int = 0
    incomplete_elements: Set[str] = field(default_factory=set)
    unresolved_references: Set[str] = field(default_factory=set)
    diagnostics_by_kind: Dict[str, int] = field(default_factory=dict)

    # Warnings and flags
    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)


def _constrained_paths(de: DataElement) -> List[Tuple[Identifier, ...]]:
    """Every path a declared constraint points at, relative to the element."""
    paths: List[Tuple[Identifier, ...]] = []
    declared = list(de.fields)
    if isinstance(de.value, IdentifiableValue) and not de.value.identifier.is_primitive:
        declared.append(de.value)
    for value in declared:
        if not isinstance(value, IdentifiableValue):
            continue
        for c in value.constraints:
            if c.path:
                paths.append((value.identifier,) + tuple(c.path))
    return paths


def analyze_specifications(
    specs: Specifications,
    collector: Optional[DiagnosticCollector] = None,
    settings: Optional[Settings] = None,
) -> SpecificationsReport:
    """
    Perform comprehensive analysis of a Specifications registry.

    Resolves, for each element:
    - its own value
    - each effective field
    - each path named by a declared constraint

    Returns a SpecificationsReport with metrics and warnings.
    """
    collector = collector if collector is not None else DiagnosticCollector()
    engine = ResolutionEngine(specs, collector, settings)
    report = SpecificationsReport()

    elements = specs.elements()
    report.total_namespaces = len(specs.namespaces)
    report.total_elements = len(elements)

    # =========================================================================
    # 1. INVENTORY
    # =========================================================================

    per_namespace: Dict[str, int] = defaultdict(int)
    for ns in specs.namespaces:
        per_namespace[ns.name] = 0
    for de in elements:
        per_namespace[de.identifier.namespace] += 1
        if de.is_entry:
            report.total_entries += 1
        if de.is_abstract:
            report.total_abstract += 1
        if de.is_group:
            report.total_groups += 1
    report.elements_per_namespace = dict(per_namespace)

    # =========================================================================
    # 2. INHERITANCE
    # =========================================================================

    for de in elements:
        chain = engine.lineage(de)
        depth = len(chain) - 1
        if chain[-1].parent == de.identifier:
            # the chain loops back to de, so de is a member of the cycle
            report.cyclic_elements.add(de.identifier.fqn)
        if depth > report.max_inheritance_depth:
            report.max_inheritance_depth = depth
            report.deepest_element = de.identifier.fqn

    # =========================================================================
    # 3. RESOLUTION
    # =========================================================================

    seen: Set[Diagnostic] = set()
    for de in elements:
        nodes: List[ResolvedNode] = [engine.resolve(de)]
        nodes.extend(engine.resolve_fields(de))
        nodes.extend(engine.resolve(de, path) for path in _constrained_paths(de))

        for node in nodes:
            report.resolved_paths += 1
            if node.is_failure:
                report.failed_paths += 1
            if node.incomplete:
                report.incomplete_elements.add(de.identifier.fqn)
            seen.update(node.diagnostics)

        if isinstance(de.value, ChoiceValue) and any(o.identifier is None for o in de.value.aggregate_options()):
            report.incomplete_elements.add(de.identifier.fqn)

    by_kind: Dict[str, int] = defaultdict(int)
    for d in seen:
        by_kind[d.kind.value] += 1
        if d.kind is DiagnosticKind.UNRESOLVED_REFERENCE and d.element is not None:
            report.unresolved_references.add(d.element.fqn)
    report.diagnostics_by_kind = dict(by_kind)

    logger.debug(
        "Analyzed %d elements: %d paths, %d failed",
        report.total_elements, report.resolved_paths, report.failed_paths,
    )

    # =========================================================================
    # 4. WARNING FLAGS
    # =========================================================================

    if report.unresolved_references:
        report.add_warning(
            f"Unresolved references in: {', '.join(sorted(report.unresolved_references))}"
        )

    if report.cyclic_elements:
        report.add_warning(
            f"Cyclic inheritance: {', '.join(sorted(report.cyclic_elements))}"
        )

    violations = by_kind.get(DiagnosticKind.CONSTRAINT_VIOLATION.value, 0)
    if violations:
        report.add_warning(f"Constraint violations: {violations}")

    ambiguous = by_kind.get(DiagnosticKind.AMBIGUOUS_OR_UNRESOLVED_PATH.value, 0)
    if ambiguous:
        report.add_warning(f"Ambiguous or unresolved paths: {ambiguous}")

    if report.incomplete_elements:
        report.add_warning(
            f"Incomplete (TBD) elements: {', '.join(sorted(report.incomplete_elements))}"
        )

    empty = sorted(name for name, count in report.elements_per_namespace.items() if count == 0)
    if empty:
        report.add_warning(f"Empty namespaces: {', '.join(empty)}")

    if report.max_inheritance_depth > 5:
        report.add_warning(
            f"Deep inheritance: {report.deepest_element} has {report.max_inheritance_depth} ancestors"
        )

    return report
