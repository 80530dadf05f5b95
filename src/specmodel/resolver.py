"""
Resolution Engine: effective definitions of data elements.

Given an element and a path of identifiers into it, computes the value
that applies at that path after inheritance and constraint merging:
    - Local lookup through fields, the value slot and choice options
    - Narrowing-only merge along the based-on chain
    - Includes multiplicities placed at the nearest list on their path
    - Unresolved references, ambiguous paths, cycles as diagnostics

IMPORTANT: This is a pure query layer. It never mutates the registry.
The only state it writes is the diagnostic collector it was given.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, Iterator, List, Optional, Sequence, Set, Tuple, Union

from specmodel.config import Settings, get_settings
from specmodel.constraints import (
    BindingStrength,
    BooleanConstraint,
    CardConstraint,
    CodeConstraint,
    Constraint,
    IncludesCodeConstraint,
    IncludesTypeConstraint,
    Path,
    TypeConstraint,
    ValueSetBinding,
    ValueSetConstraint,
)
from specmodel.diagnostics import Diagnostic, DiagnosticCollector, DiagnosticKind
from specmodel.identifiers import Concept, Identifier, Namespace
from specmodel.model import DataElement, Specifications
from specmodel.values import TBD, Cardinality, ChoiceValue, IdentifiableValue, RefValue, Value

logger = logging.getLogger(__name__)


class NodeKind(Enum):
    """What sits at a resolved path."""

    IDENTIFIABLE = "identifiable"
    REFERENCE = "reference"
    CHOICE = "choice"
    TBD = "tbd"
    NONE = "none"                # element declares no value anywhere in its chain
    UNRESOLVED = "unresolved"    # the path could not be resolved


@dataclass(frozen=True)
class IncludedType:
    """Occurrence range of a subtype inside a list, relative to the list."""

    identifier: Identifier
    cardinality: Cardinality
    path: Path = ()
    on_value: bool = False


@dataclass(frozen=True)
class IncludedCode:
    """Code required inside a list, at path relative to the list."""

    code: Concept
    path: Path = ()


@dataclass
class ResolvedNode:
    """
    Effective definition at (element, path).

    Properties:
        name: Identifier the path segment names (as originally declared)
        identifier: Effective type after type narrowing
        cardinality: Effective cardinality (None if never declared).
            For a choice option this is the option's own range.
        choice_cardinality: Range of the enclosing choice when the path
            selects a choice option, composed through nested choices
        options: Choice options, when kind is CHOICE
        value_type: Narrowed type of this node's value (on-value constraints)
        code / boolean: Fixed values
        binding: Effective value set binding
        includes_types / includes_codes: Multiplicities applying to this list
        incomplete: A TBD was met (value, parent or deeper)
        diagnostics: Everything reported while resolving this node
    """

    element: Optional[Identifier]
    path: Path = ()
    kind: NodeKind = NodeKind.NONE
    name: Optional[Identifier] = None
    identifier: Optional[Identifier] = None
    cardinality: Optional[Cardinality] = None
    choice_cardinality: Optional[Cardinality] = None
    options: Tuple[Value, ...] = ()
    value_type: Optional[Identifier] = None
    code: Optional[Concept] = None
    boolean: Optional[bool] = None
    binding: Optional[ValueSetBinding] = None
    includes_types: List[IncludedType] = field(default_factory=list)
    includes_codes: List[IncludedCode] = field(default_factory=list)
    incomplete: bool = False
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def failure(self) -> Optional[DiagnosticKind]:
        for d in self.diagnostics:
            if d.kind.is_error:
                return d.kind
        if self.kind is NodeKind.UNRESOLVED:
            return DiagnosticKind.AMBIGUOUS_OR_UNRESOLVED_PATH
        return None

    @property
    def is_failure(self) -> bool:
        return self.failure is not None

    @property
    def is_list(self) -> bool:
        return self.cardinality is not None and self.cardinality.is_list


# A declaration found for a path segment: (declaring element, value, constraints reaching it)
_Declaration = Tuple[Identifier, Value, List[Constraint]]
_Pending = Tuple[Constraint, Path]
# A leaf found for a path segment: (value, constraints reaching it, enclosing choice range)
_Match = Tuple[Value, List[Constraint], Optional[Cardinality]]


class _Resolution:
    """
    Per-call bookkeeping: de-duplicated diagnostics and recursion guards.

    Diagnostics are filed under origin, the element and path the caller
    asked for. A problem found deeper (in a descended-into element or an
    ancestor) names that inner location in its message.
    """

    def __init__(self, origin: Optional[Tuple[Optional[Identifier], Path]] = None):
        self.origin = origin
        self.diagnostics: List[Diagnostic] = []
        self._seen: Set[Diagnostic] = set()
        self._cycles: Set[FrozenSet[Identifier]] = set()
        self._quiet = 0
        self.active: Set[Tuple[Identifier, Path]] = set()

    def report(self, kind: DiagnosticKind, element: Optional[Identifier], path: Path, message: str) -> None:
        if self._quiet:
            return
        path = tuple(path)
        if self.origin is not None and (element, path) != self.origin:
            message = f"{message} (in {_where(element, path)})"
            element, path = self.origin
        diagnostic = Diagnostic(kind=kind, element=element, path=path, message=message)
        if diagnostic in self._seen:
            return
        self._seen.add(diagnostic)
        self.diagnostics.append(diagnostic)

    def report_cycle(self, members: Sequence[Identifier], element: Identifier) -> None:
        key = frozenset(members)
        if self._quiet or key in self._cycles:
            return
        self._cycles.add(key)
        loop = " -> ".join(str(m) for m in list(members) + [members[0]])
        self.report(DiagnosticKind.CYCLIC_INHERITANCE, element, (), f"Cyclic based-on chain: {loop}")

    @contextmanager
    def quiet(self) -> Iterator[None]:
        self._quiet += 1
        try:
            yield
        finally:
            self._quiet -= 1


def _kind_of(value: Value) -> NodeKind:
    if isinstance(value, IdentifiableValue):
        return NodeKind.IDENTIFIABLE
    if isinstance(value, RefValue):
        return NodeKind.REFERENCE
    if isinstance(value, ChoiceValue):
        return NodeKind.CHOICE
    return NodeKind.TBD


def _leaves(options: Sequence[Value]) -> List[Value]:
    return ChoiceValue(options=tuple(options)).aggregate_options()


def _fmt(path: Path) -> str:
    return ".".join(str(p) for p in path) or "<value>"


def _where(element: Optional[Identifier], path: Path) -> str:
    return f"{element}[{_fmt(path)}]" if path else str(element)


class ResolutionEngine:
    """
    Query layer over a Specifications registry.

    Stateless across calls apart from the read-only registry and the
    append-only collector, so concurrent read-only resolution is safe.
    """

    def __init__(
        self,
        specs: Specifications,
        collector: Optional[DiagnosticCollector] = None,
        settings: Optional[Settings] = None,
    ):
        self.specs = specs
        self.collector = collector if collector is not None else DiagnosticCollector()
        self.settings = settings or get_settings()

    # =========================================================================
    # PUBLIC QUERIES
    # =========================================================================

    def find(self, identifier: Identifier) -> Optional[DataElement]:
        return self.specs.find(identifier)

    def elements_in_namespace(self, namespace: Union[Namespace, str]) -> List[DataElement]:
        return self.specs.elements_in_namespace(namespace)

    def lineage(self, element: Union[DataElement, Identifier]) -> List[DataElement]:
        """The element followed by its based-on ancestors, nearest first."""
        de = self._element(element)
        if de is None:
            return []
        ctx = _Resolution()
        with ctx.quiet():
            return self._lineage(ctx, de)

    def is_type_of(self, child: Identifier, ancestor: Identifier) -> bool:
        """True if child is ancestor or (transitively) based on it."""
        ctx = _Resolution()
        with ctx.quiet():
            return self._is_type_of(ctx, child, ancestor)

    def resolve(self, element: Union[DataElement, Identifier], path: Sequence[Identifier] = ()) -> ResolvedNode:
        """
        Resolve the effective definition at path within element.

        An empty path targets the element's own value. Every diagnostic
        raised along the way is recorded in the collector and attached
        to the returned node.
        """
        path = tuple(path)
        identifier = element.identifier if isinstance(element, DataElement) else element
        ctx = _Resolution(origin=(identifier, path))
        de = self._element(element)
        if de is None:
            ctx.report(DiagnosticKind.UNRESOLVED_REFERENCE, identifier, path, f"Element {identifier} not found")
            node = ResolvedNode(element=identifier, path=path, kind=NodeKind.UNRESOLVED)
        else:
            logger.debug("Resolving %s at %s", de.identifier, _fmt(path))
            node = self._resolve(ctx, de, path, [])
            node.element = de.identifier
            node.path = path
        return self._publish(ctx, node)

    def resolve_fields(self, element: Union[DataElement, Identifier]) -> List[ResolvedNode]:
        """
        Effective field list after inheritance.

        Inherited fields come first in ancestor order; redeclared fields
        keep the position where they were first declared.
        """
        de = self._element(element)
        if de is None:
            return [self.resolve(element)]

        ctx = _Resolution()
        with ctx.quiet():
            chain = self._lineage(ctx, de)

        order: List[object] = []
        grouped: Dict[object, List[_Declaration]] = {}
        for ancestor in reversed(chain):
            for position, f in enumerate(ancestor.fields):
                if isinstance(f, (IdentifiableValue, RefValue)):
                    key: object = f.identifier
                elif isinstance(f, ChoiceValue):
                    key = ("choice", tuple(o.identifier for o in f.aggregate_options()))
                else:
                    key = ("tbd", ancestor.identifier, position)
                if key not in grouped:
                    order.append(key)
                    grouped[key] = []
                grouped[key].append((ancestor.identifier, f, list(f.constraints)))

        nodes = []
        for key in order:
            if isinstance(key, Identifier):
                nodes.append(self.resolve(de, (key,)))
                continue
            where = (de.identifier, ())
            ctx = _Resolution(origin=where)
            node, pending = self._merge(ctx, where, grouped[key], [])
            self._finish(ctx, node, where, pending)
            node.incomplete = node.incomplete or any(a.has_tbd_parent for a in chain)
            nodes.append(self._publish(ctx, node))
        return nodes

    # =========================================================================
    # RESOLUTION WALK
    # =========================================================================

    def _publish(self, ctx: _Resolution, node: ResolvedNode) -> ResolvedNode:
        if node.incomplete:
            ctx.report(
                DiagnosticKind.INCOMPLETE, node.element, node.path,
                f"{_fmt(node.path)} of {node.element} is not fully defined (TBD)",
            )
        node.diagnostics = list(ctx.diagnostics)
        for diagnostic in ctx.diagnostics:
            self.collector.record(diagnostic)
        return node

    def _element(self, element: Union[DataElement, Identifier]) -> Optional[DataElement]:
        if isinstance(element, DataElement):
            return element
        if isinstance(element, Identifier):
            return self.specs.find(element)
        return None

    def _resolve(self, ctx: _Resolution, de: DataElement, path: Path, outer: List[_Pending]) -> ResolvedNode:
        key = (de.identifier, path)
        if key in ctx.active:
            ctx.report(
                DiagnosticKind.AMBIGUOUS_OR_UNRESOLVED_PATH, de.identifier, path,
                f"Recursive definition while resolving {_fmt(path)}",
            )
            return ResolvedNode(element=de.identifier, path=path, kind=NodeKind.UNRESOLVED)
        ctx.active.add(key)
        try:
            return self._resolve_at(ctx, de, path, outer)
        finally:
            ctx.active.discard(key)

    def _resolve_at(self, ctx: _Resolution, de: DataElement, path: Path, outer: List[_Pending]) -> ResolvedNode:
        where = (de.identifier, path)
        chain = self._lineage(ctx, de)
        incomplete = any(a.has_tbd_parent for a in chain)

        if not path:
            decls = [
                (a.identifier, a.value, list(a.value.constraints))
                for a in reversed(chain) if a.value is not None
            ]
            if not decls:
                return ResolvedNode(element=de.identifier, path=path, kind=NodeKind.NONE, incomplete=incomplete)
            node, pending = self._merge(ctx, where, decls, [])
            self._finish(ctx, node, where, pending)
            node.incomplete = node.incomplete or incomplete
            return node

        head, rest = path[0], path[1:]
        decls = []
        around: Optional[Cardinality] = None
        for ancestor in reversed(chain):
            matches = self._local_matches(ctx, ancestor, head)
            if len(matches) > 1:
                ctx.report(
                    DiagnosticKind.AMBIGUOUS_OR_UNRESOLVED_PATH, *where,
                    f"{head} matches {len(matches)} fields or choice options in {ancestor.identifier}",
                )
                return ResolvedNode(element=de.identifier, path=path, kind=NodeKind.UNRESOLVED)
            if matches:
                value, constraints, enclosing = matches[0]
                decls.append((ancestor.identifier, value, constraints))
                if enclosing is not None:
                    around = enclosing
        if not decls:
            ctx.report(
                DiagnosticKind.AMBIGUOUS_OR_UNRESOLVED_PATH, *where,
                f"No field, value or choice option {head} in {de.identifier} or its ancestors",
            )
            return ResolvedNode(element=de.identifier, path=path, kind=NodeKind.UNRESOLVED)

        outer_here = [(c, rel[1:]) for c, rel in outer if rel and rel[0] == head]
        node, pending = self._merge(ctx, where, decls, outer_here)
        node.choice_cardinality = around

        if rest:
            deep = self._descend(ctx, node, where, rest, pending)
            deep.incomplete = deep.incomplete or incomplete
            return deep

        self._finish(ctx, node, where, pending)
        node.incomplete = node.incomplete or incomplete
        return node

    def _lineage(self, ctx: _Resolution, de: DataElement) -> List[DataElement]:
        chain = [de]
        visited = [de.identifier]
        current = de
        while True:
            parents = current.parents
            if not parents:
                break
            if len(parents) > 1:
                ctx.report(
                    DiagnosticKind.CONSTRAINT_VIOLATION, current.identifier, (),
                    f"Multiple parents declared; inheriting from {parents[0]} only",
                )
            parent_id = parents[0]
            if parent_id in visited:
                ctx.report_cycle(visited[visited.index(parent_id):], de.identifier)
                break
            parent = self.specs.find(parent_id)
            if parent is None:
                ctx.report(
                    DiagnosticKind.UNRESOLVED_REFERENCE, current.identifier, (),
                    f"Based on {parent_id} not found",
                )
                break
            chain.append(parent)
            visited.append(parent_id)
            current = parent
        return chain

    def _is_type_of(self, ctx: _Resolution, child: Identifier, ancestor: Identifier) -> bool:
        if child == ancestor:
            return True
        if child.is_primitive or ancestor.is_primitive:
            return False
        de = self.specs.find(child)
        if de is None:
            return False
        return any(a.identifier == ancestor for a in self._lineage(ctx, de)[1:])

    def _local_matches(self, ctx: _Resolution, de: DataElement, head: Identifier) -> List[_Match]:
        matches: List[_Match] = []
        for f in de.fields:
            matches.extend(self._matches_in(ctx, f, head, []))
        value = de.value
        if isinstance(value, IdentifiableValue) and not value.identifier.is_primitive:
            matches.extend(self._matches_in(ctx, value, head, []))
        elif isinstance(value, ChoiceValue):
            matches.extend(self._matches_in(ctx, value, head, []))
        return matches

    def _matches_in(
        self,
        ctx: _Resolution,
        value: Value,
        head: Identifier,
        reaching: List[Constraint],
        enclosing: Optional[Cardinality] = None,
    ) -> List[_Match]:
        """
        Leaf values named head inside value, with the constraints that reach
        them and the range of the choices around them (None outside a choice).
        """
        if isinstance(value, ChoiceValue):
            passed = list(reaching)
            for c in value.constraints:
                if c.path and c.path[0] == head:
                    passed.append(replace(c, path=c.path[1:]))
                elif isinstance(c, TypeConstraint) and not c.path and not c.on_value \
                        and self._is_type_of(ctx, c.target, head):
                    passed.append(c)
            card = value.cardinality or Cardinality(1, 1)
            if enclosing is not None:
                card = card.scale(enclosing)
            found: List[_Match] = []
            for option in value.options:
                found.extend(self._matches_in(ctx, option, head, passed, card))
            return found
        if isinstance(value, TBD) or value.identifier != head:
            return []
        return [(value, list(value.constraints) + reaching, enclosing)]

    def _descend(
        self, ctx: _Resolution, node: ResolvedNode, where: Tuple[Identifier, Path], rest: Path, pending: List[_Pending]
    ) -> ResolvedNode:
        element_id, path = where
        if node.kind is NodeKind.TBD:
            return ResolvedNode(element=element_id, path=path + rest, kind=NodeKind.TBD, incomplete=True)
        if node.kind is NodeKind.REFERENCE:
            ctx.report(
                DiagnosticKind.AMBIGUOUS_OR_UNRESOLVED_PATH, *where,
                f"Cannot descend into {_fmt(rest)} through a reference to {node.identifier}",
            )
            return ResolvedNode(element=element_id, path=path + rest, kind=NodeKind.UNRESOLVED)
        if node.kind is not NodeKind.IDENTIFIABLE or node.identifier is None or node.identifier.is_primitive:
            ctx.report(
                DiagnosticKind.AMBIGUOUS_OR_UNRESOLVED_PATH, *where,
                f"{node.identifier} has no fields to resolve {_fmt(rest)}",
            )
            return ResolvedNode(element=element_id, path=path + rest, kind=NodeKind.UNRESOLVED)

        target = self.specs.find(node.identifier)
        if target is None:
            ctx.report(DiagnosticKind.UNRESOLVED_REFERENCE, *where, f"Element {node.identifier} not found")
            return ResolvedNode(element=element_id, path=path + rest, kind=NodeKind.UNRESOLVED)

        down = list(pending)
        if node.value_type is not None:
            segment = self._value_segment(ctx, target, node.value_type)
            if segment is not None:
                down.append((TypeConstraint(node.value_type), (segment,)))
        return self._resolve(ctx, target, rest, down)

    def _value_segment(self, ctx: _Resolution, de: DataElement, value_type: Identifier) -> Optional[Identifier]:
        """Path segment naming de's value, picking the choice option value_type narrows."""
        with ctx.quiet():
            vnode = self._resolve(ctx, de, (), [])
        if vnode.kind is NodeKind.CHOICE:
            for option in _leaves(vnode.options):
                if option.identifier is not None and self._is_type_of(ctx, value_type, option.identifier):
                    return option.identifier
            return None
        return vnode.name

    # =========================================================================
    # MERGING
    # =========================================================================

    def _merge(
        self, ctx: _Resolution, where: Tuple[Identifier, Path], decls: List[_Declaration], outer_here: List[_Pending]
    ) -> Tuple[ResolvedNode, List[_Pending]]:
        """Fold declarations root-first, applying each one's constraints after it."""
        element_id, path = where
        node = ResolvedNode(element=element_id, path=path)
        pending: List[_Pending] = []
        for owner, value, constraints in decls:
            self._apply_declaration(ctx, node, where, owner, value)
            for c in constraints:
                if c.path:
                    pending.append((c, c.path))
                else:
                    self._apply_constraint(ctx, node, where, c, declared_here=True)
        for c, rel in outer_here:
            if rel:
                pending.append((c, rel))
            else:
                self._apply_constraint(ctx, node, where, c, declared_here=False)
        if node.kind is NodeKind.TBD:
            node.incomplete = True
        return node, pending

    def _apply_declaration(
        self, ctx: _Resolution, node: ResolvedNode, where: Tuple[Identifier, Path], owner: Identifier, value: Value
    ) -> None:
        kind = _kind_of(value)
        if node.kind is NodeKind.NONE or node.kind is NodeKind.TBD and kind is not NodeKind.TBD:
            node.kind = kind
            node.name = value.identifier
            node.identifier = value.identifier
            node.options = value.options if isinstance(value, ChoiceValue) else ()
            if value.cardinality is not None:
                self._narrow_cardinality(ctx, node, where, value.cardinality, f"{owner}")
            return

        if kind is NodeKind.TBD:
            if node.kind is not NodeKind.TBD:
                ctx.report(
                    DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                    f"{owner} replaces inherited {node.identifier} with TBD",
                )
                return
        elif kind is not node.kind:
            ctx.report(
                DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                f"{owner} redeclares a {node.kind.value} value as {kind.value}",
            )
            return
        elif kind is NodeKind.CHOICE:
            inherited = [o.identifier for o in _leaves(node.options) if o.identifier is not None]
            for option in value.aggregate_options():
                if option.identifier is None:
                    continue
                if not any(self._is_type_of(ctx, option.identifier, i) for i in inherited):
                    ctx.report(
                        DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                        f"{owner} adds choice option {option.identifier} not allowed by its parent",
                    )
                    return
            node.options = value.options
        elif value.identifier != node.identifier:
            if self._is_type_of(ctx, value.identifier, node.identifier):
                node.identifier = value.identifier
            elif not self._is_type_of(ctx, node.identifier, value.identifier):
                ctx.report(
                    DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                    f"{owner} redeclares {node.identifier} as unrelated type {value.identifier}",
                )
                return

        if value.cardinality is not None:
            self._narrow_cardinality(ctx, node, where, value.cardinality, f"{owner}")

    def _apply_constraint(
        self, ctx: _Resolution, node: ResolvedNode, where: Tuple[Identifier, Path], c: Constraint, declared_here: bool
    ) -> None:
        if isinstance(c, CardConstraint):
            self._narrow_cardinality(ctx, node, where, c.cardinality, "cardinality constraint")
        elif isinstance(c, TypeConstraint):
            if c.on_value:
                self._narrow_value_type(ctx, node, where, c.target)
            else:
                self._narrow_type(ctx, node, where, c.target)
        elif isinstance(c, IncludesTypeConstraint):
            self._include_type_here(ctx, node, where, c, declared_here)
        elif isinstance(c, IncludesCodeConstraint):
            if not node.is_list:
                if declared_here:
                    ctx.report(
                        DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                        f"Includes code {c.code} requires a list, found {node.cardinality}",
                    )
                return
            self._add_included_code(node, IncludedCode(c.code))
        elif isinstance(c, ValueSetConstraint):
            self._bind(ctx, node, where, ValueSetBinding(c.value_set, c.binding_strength))
        elif isinstance(c, CodeConstraint):
            if node.code is None:
                node.code = c.code
            elif (node.code.system, node.code.code) != (c.code.system, c.code.code):
                ctx.report(
                    DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                    f"Fixed code {c.code} conflicts with {node.code}",
                )
        elif isinstance(c, BooleanConstraint):
            if node.boolean is None:
                node.boolean = c.value
            elif node.boolean != c.value:
                ctx.report(
                    DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                    f"Fixed boolean {c.value} conflicts with {node.boolean}",
                )
        else:
            raise TypeError(f"Unsupported constraint type: {type(c)}")

    def _narrow_cardinality(
        self, ctx: _Resolution, node: ResolvedNode, where: Tuple[Identifier, Path], card: Cardinality, source: str
    ) -> None:
        if node.cardinality is None:
            node.cardinality = card
            return
        if not card.fits_within(node.cardinality):
            ctx.report(
                DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                f"Cardinality {card} from {source} widens inherited {node.cardinality}",
            )
        merged = card.intersect(node.cardinality)
        if merged is not None:
            node.cardinality = merged

    def _check_target(self, ctx: _Resolution, where: Tuple[Identifier, Path], target: Identifier) -> bool:
        if target.is_primitive or self.specs.find(target) is not None:
            return True
        ctx.report(DiagnosticKind.UNRESOLVED_REFERENCE, *where, f"Constraint target {target} not found")
        return False

    def _narrow_type(self, ctx: _Resolution, node: ResolvedNode, where: Tuple[Identifier, Path], target: Identifier) -> None:
        if not self._check_target(ctx, where, target):
            return
        if node.kind is NodeKind.CHOICE:
            self._select_option(ctx, node, where, target)
            return
        if node.kind not in (NodeKind.IDENTIFIABLE, NodeKind.REFERENCE):
            ctx.report(
                DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                f"Type constraint {target} cannot apply to a {node.kind.value} value",
            )
            return
        if self._is_type_of(ctx, target, node.identifier):
            node.identifier = target
        else:
            ctx.report(
                DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                f"{target} is not {node.identifier} or based on it",
            )

    def _select_option(self, ctx: _Resolution, node: ResolvedNode, where: Tuple[Identifier, Path], target: Identifier) -> None:
        candidates = [
            o for o in _leaves(node.options)
            if o.identifier is not None and self._is_type_of(ctx, target, o.identifier)
        ]
        if len(candidates) != 1:
            ctx.report(
                DiagnosticKind.AMBIGUOUS_OR_UNRESOLVED_PATH, *where,
                f"Type constraint {target} matches {len(candidates)} choice options",
            )
            return
        option = candidates[0]
        node.kind = _kind_of(option)
        node.name = option.identifier
        node.identifier = target
        node.options = ()

    def _narrow_value_type(
        self, ctx: _Resolution, node: ResolvedNode, where: Tuple[Identifier, Path], target: Identifier
    ) -> None:
        if not self._check_target(ctx, where, target):
            return
        if node.kind is not NodeKind.IDENTIFIABLE or node.identifier is None or node.identifier.is_primitive:
            ctx.report(
                DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                f"On-value type constraint {target} needs an element with a value",
            )
            return
        de = self.specs.find(node.identifier)
        if de is None:
            ctx.report(DiagnosticKind.UNRESOLVED_REFERENCE, *where, f"Element {node.identifier} not found")
            return

        current = node.value_type
        if current is None:
            with ctx.quiet():
                vnode = self._resolve(ctx, de, (), [])
            if vnode.kind is NodeKind.CHOICE:
                allowed = [o.identifier for o in _leaves(vnode.options) if o.identifier is not None]
            elif vnode.identifier is not None:
                allowed = [vnode.identifier]
            else:
                ctx.report(
                    DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                    f"{node.identifier} has no value for on-value type constraint {target}",
                )
                return
        else:
            allowed = [current]

        if any(self._is_type_of(ctx, target, a) for a in allowed):
            node.value_type = target
        else:
            ctx.report(
                DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                f"{target} is not a valid value type for {node.identifier}",
            )

    def _bind(self, ctx: _Resolution, node: ResolvedNode, where: Tuple[Identifier, Path], binding: ValueSetBinding) -> None:
        current = node.binding
        if current is None or not binding.strength.is_weaker_than(current.strength):
            node.binding = binding
            return
        if current.strength is BindingStrength.REQUIRED or self.settings.strict_binding_strength:
            ctx.report(
                DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                f"Binding to {binding.value_set} ({binding.strength.value}) loosens "
                f"{current.strength.value} binding to {current.value_set}",
            )
            return
        logger.info(
            "Keeping %s binding to %s over weaker %s binding at %s",
            current.strength.value, current.value_set, binding.strength.value, _fmt(where[1]),
        )

    # =========================================================================
    # INCLUDES
    # =========================================================================

    def _include_type_here(
        self,
        ctx: _Resolution,
        node: ResolvedNode,
        where: Tuple[Identifier, Path],
        c: IncludesTypeConstraint,
        declared_here: bool,
    ) -> None:
        if c.on_value:
            vnode = self._value_node(ctx, node)
            list_card = vnode.cardinality if vnode is not None else None
            if node.value_type is not None:
                allowed = [node.value_type]
            elif vnode is not None and vnode.kind is NodeKind.CHOICE:
                allowed = [o.identifier for o in _leaves(vnode.options) if o.identifier is not None]
            else:
                allowed = [vnode.identifier] if vnode is not None and vnode.identifier is not None else []
        else:
            list_card = node.cardinality
            if node.kind is NodeKind.CHOICE:
                allowed = [o.identifier for o in _leaves(node.options) if o.identifier is not None]
            else:
                allowed = [node.identifier] if node.identifier is not None else []

        if list_card is None or not list_card.is_list:
            if declared_here:
                ctx.report(
                    DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                    f"Includes type {c.target} requires a list, found {list_card}",
                )
            return
        self._add_included_type(ctx, node, where, IncludedType(c.target, c.cardinality, (), c.on_value), allowed, list_card)

    def _value_node(self, ctx: _Resolution, node: ResolvedNode) -> Optional[ResolvedNode]:
        if node.identifier is None or node.identifier.is_primitive:
            return None
        de = self.specs.find(node.identifier)
        if de is None:
            return None
        with ctx.quiet():
            return self._resolve(ctx, de, (), [])

    def _add_included_type(
        self,
        ctx: _Resolution,
        node: ResolvedNode,
        where: Tuple[Identifier, Path],
        included: IncludedType,
        allowed: List[Identifier],
        list_card: Cardinality,
    ) -> None:
        if not self._check_target(ctx, where, included.identifier):
            return
        if allowed and not any(self._is_type_of(ctx, included.identifier, a) for a in allowed):
            ctx.report(
                DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                f"Included type {included.identifier} is not based on {', '.join(str(a) for a in allowed)}",
            )
            return
        if list_card.max is not None and included.cardinality.min > list_card.max:
            ctx.report(
                DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                f"Included type {included.identifier} needs {included.cardinality.min} members "
                f"but the list allows {list_card}",
            )
            return
        for i, existing in enumerate(node.includes_types):
            if (existing.identifier, existing.path, existing.on_value) != (included.identifier, included.path, included.on_value):
                continue
            if not included.cardinality.fits_within(existing.cardinality):
                ctx.report(
                    DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                    f"Included type {included.identifier} cardinality {included.cardinality} "
                    f"widens inherited {existing.cardinality}",
                )
            merged = included.cardinality.intersect(existing.cardinality) or existing.cardinality
            node.includes_types[i] = replace(existing, cardinality=merged)
            return
        node.includes_types.append(included)

    def _add_included_code(self, node: ResolvedNode, included: IncludedCode) -> None:
        for existing in node.includes_codes:
            if (existing.code.system, existing.code.code, existing.path) == (included.code.system, included.code.code, included.path):
                return
        node.includes_codes.append(included)

    def _finish(self, ctx: _Resolution, node: ResolvedNode, where: Tuple[Identifier, Path], pending: List[_Pending]) -> None:
        """Checks that only matter for the node actually requested."""
        if node.kind is NodeKind.CHOICE:
            for option in _leaves(node.options):
                self._check_declared_target(ctx, where, option)
        elif node.kind in (NodeKind.IDENTIFIABLE, NodeKind.REFERENCE):
            self._check_declared_target(ctx, where, RefValue(node.identifier) if node.kind is NodeKind.REFERENCE
                                        else IdentifiableValue(node.identifier))

        nested = [(c, rel) for c, rel in pending
                  if isinstance(c, (IncludesTypeConstraint, IncludesCodeConstraint)) and not c.on_value]
        if not nested:
            return

        container = None
        if node.kind is NodeKind.IDENTIFIABLE and node.identifier is not None and not node.identifier.is_primitive:
            container = self.specs.find(node.identifier)

        for c, rel in nested:
            prefixes: List[ResolvedNode] = []
            if container is not None:
                with ctx.quiet():
                    prefixes = [self._resolve(ctx, container, rel[:k], pending) for k in range(1, len(rel) + 1)]
            if any(p.is_list for p in prefixes):
                continue
            if not node.is_list:
                if rel == c.path:
                    ctx.report(
                        DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                        f"No list-valued field on includes path {_fmt(rel)}",
                    )
                continue
            if isinstance(c, IncludesCodeConstraint):
                self._add_included_code(node, IncludedCode(c.code, rel))
                continue
            target_node = prefixes[-1] if prefixes else None
            allowed = []
            if target_node is not None and target_node.kind is not NodeKind.UNRESOLVED and target_node.identifier is not None:
                allowed = [target_node.identifier]
            self._add_included_type(
                ctx, node, where, IncludedType(c.target, c.cardinality, rel), allowed, node.cardinality,
            )

    def _check_declared_target(self, ctx: _Resolution, where: Tuple[Identifier, Path], value: Value) -> None:
        identifier = value.identifier
        if identifier is None or identifier.is_primitive:
            return
        de = self.specs.find(identifier)
        if de is None:
            ctx.report(DiagnosticKind.UNRESOLVED_REFERENCE, *where, f"Element {identifier} not found")
        elif isinstance(value, RefValue) and not de.is_entry:
            ctx.report(
                DiagnosticKind.CONSTRAINT_VIOLATION, *where,
                f"Reference target {identifier} is not an entry element",
            )
