"""
Identifiers, namespaces and the primitive registry.

Every data element and primitive is named by an Identifier.
Identifiers are plain names: they never hold a pointer to the element
they name. Lookup always goes through the Specifications registry.

ARCHITECTURAL RULE:
    Two identifiers are equal iff namespace and name are equal.
    The concrete class (Identifier vs PrimitiveIdentifier) does not matter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional

from specmodel.exceptions import UnknownPrimitiveError


PRIMITIVE_NAMESPACE = "primitive"

PRIMITIVES: FrozenSet[str] = frozenset({
    "boolean",
    "integer",
    "decimal",
    "unsignedInt",
    "positiveInt",
    "string",
    "markdown",
    "code",
    "id",
    "oid",
    "uri",
    "base64Binary",
    "date",
    "dateTime",
    "instant",
    "time",
    "concept",
})


@dataclass(frozen=True, eq=False)
class Identifier:
    """
    Fully qualified name of a data element or primitive.

    Properties:
        namespace: Dotted namespace (e.g., "shr.test")
        name: Element name within the namespace (e.g., "Simple")

    Example:
        Identifier("shr.test", "Simple").fqn == "shr.test.Simple"
    """

    namespace: str
    name: str

    @property
    def fqn(self) -> str:
        return f"{self.namespace}.{self.name}"

    @property
    def is_primitive(self) -> bool:
        return self.namespace == PRIMITIVE_NAMESPACE

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Identifier):
            return NotImplemented
        return (self.namespace, self.name) == (other.namespace, other.name)

    def __hash__(self) -> int:
        return hash((self.namespace, self.name))

    def __str__(self) -> str:
        if self.is_primitive:
            return self.name
        return self.fqn


class PrimitiveIdentifier(Identifier):
    """Identifier in the reserved primitive namespace."""

    def __init__(self, name: str):
        object.__setattr__(self, "namespace", PRIMITIVE_NAMESPACE)
        object.__setattr__(self, "name", name)

    def __repr__(self) -> str:
        return f"PrimitiveIdentifier({self.name!r})"


def is_primitive_name(name: str) -> bool:
    return name in PRIMITIVES


def primitive(name: str) -> PrimitiveIdentifier:
    """
    Return the identifier of a built-in primitive.

    Raises:
        UnknownPrimitiveError: If name is not one of PRIMITIVES
    """
    if name not in PRIMITIVES:
        raise UnknownPrimitiveError(name)
    return PrimitiveIdentifier(name)


@dataclass(frozen=True)
class Namespace:
    """A namespace owned by the registry; created lazily when elements arrive."""

    name: str
    description: Optional[str] = None


@dataclass(frozen=True)
class Concept:
    """
    A coded concept from an external code system.

    Used for element concept lists and for fixed-code constraints.
    """

    system: str
    code: str
    display: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.system}#{self.code}"
