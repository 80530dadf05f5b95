"""
Core Specification Model Objects

Defines the data element record and the registry that owns it:
    - DataElement (a named type: value, fields, parents, concepts)
    - Specifications (root container, keyed by identifier)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about export formats or grammar text
        - Are immutable once registered (the registry itself only grows)
        - Reference parents by identifier, never by object
        - Represent structure, not resolution
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple, Union

from specmodel.identifiers import Concept, Identifier, Namespace
from specmodel.values import TBD, Value

logger = logging.getLogger(__name__)


BasedOn = Union[Identifier, TBD]


@dataclass(frozen=True)
class DataElement:
    """
    A named type in the specification.

    Properties:
        identifier:
            Fully qualified name, unique in the registry

        is_entry:
            Usable as a top-level, independently referenceable record.
            Only entries may be the target of a RefValue.

        is_abstract:
            Cannot be instantiated directly; exists to be based on

        description:
            Human-readable text (optional)

        based_on:
            Parents in declaration order. Each is an Identifier resolved
            through the registry at query time, or a TBD placeholder.

        concepts:
            Associated concepts (TBD placeholders allowed)

        value:
            The element's own value slot (optional)

        fields:
            Named fields, in declaration order

    Example:
        DataElementBuilder(Identifier("shr.test", "Simple"), is_entry=True)
            .with_value(IdentifiableValue(primitive("string")).with_min_max(1, 1))
            .build()
    """

    identifier: Identifier
    is_entry: bool = False
    is_abstract: bool = False
    description: Optional[str] = None
    based_on: Tuple[BasedOn, ...] = ()
    concepts: Tuple[Union[Concept, TBD], ...] = ()
    value: Optional[Value] = None
    fields: Tuple[Value, ...] = ()

    @property
    def parents(self) -> List[Identifier]:
        return [p for p in self.based_on if isinstance(p, Identifier)]

    @property
    def parent(self) -> Optional[Identifier]:
        parents = self.parents
        return parents[0] if parents else None

    @property
    def has_tbd_parent(self) -> bool:
        return any(isinstance(p, TBD) for p in self.based_on)

    @property
    def is_group(self) -> bool:
        return not self.is_entry and bool(self.fields)

    def get_field(self, identifier: Identifier) -> Optional[Value]:
        """
        Retrieve a directly declared field by its target identifier.

        Choice fields and TBD fields have no single identifier and are
        never returned here.
        """
        for f in self.fields:
            if f.identifier == identifier:
                return f
        return None


class Specifications:
    """
    Registry of namespaces and data elements.

    This is THE unit of sharing between the builder phase, the
    resolution engine and external consumers.

    Lifecycle:
        - Built incrementally via add_namespace / add_element
        - Treated as read-only once resolution starts
        - No deletion API

    INVARIANTS:
        - Every registered element's namespace is registered
        - One element per identifier (last write wins)
    """

    def __init__(self):
        self._namespaces: Dict[str, Namespace] = {}
        self._elements: Dict[Identifier, DataElement] = {}

    @property
    def namespaces(self) -> List[Namespace]:
        return list(self._namespaces.values())

    def add_namespace(self, namespace: Union[Namespace, str]) -> Namespace:
        """Register a namespace. Adding an existing name is a no-op."""
        if isinstance(namespace, str):
            namespace = Namespace(namespace)
        existing = self._namespaces.get(namespace.name)
        if existing is not None:
            return existing
        self._namespaces[namespace.name] = namespace
        return namespace

    def get_namespace(self, name: str) -> Optional[Namespace]:
        return self._namespaces.get(name)

    def add_element(self, element: DataElement) -> None:
        """
        Register an element, creating its namespace if needed.

        Re-adding an identifier replaces the previous element outright.
        """
        self.add_namespace(element.identifier.namespace)
        if element.identifier in self._elements:
            logger.debug("Replacing data element %s", element.identifier)
        self._elements[element.identifier] = element

    def add(self, *elements: DataElement) -> None:
        for element in elements:
            self.add_element(element)

    def find(self, identifier: Identifier) -> Optional[DataElement]:
        """
        Retrieve an element by identifier.

        Returns:
            DataElement or None if not found (primitives are never found)
        """
        if identifier is None or identifier.is_primitive:
            return None
        return self._elements.get(identifier)

    def elements_in_namespace(self, namespace: Union[Namespace, str]) -> List[DataElement]:
        name = namespace.name if isinstance(namespace, Namespace) else namespace
        return [de for de in self._elements.values() if de.identifier.namespace == name]

    def elements(self) -> List[DataElement]:
        return list(self._elements.values())

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._elements

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[DataElement]:
        return iter(list(self._elements.values()))
