"""
Constraint Algebra

Constraints refine a value declared on an element or inherited from a
parent. Each constraint may be scoped by a path: a sequence of
identifiers descending from the constrained value into nested fields
(or choice options). An empty path means "applies here".

Variants:
    - CardConstraint: narrow cardinality
    - TypeConstraint: narrow to a subtype (optionally of the value)
    - IncludesTypeConstraint: min/max occurrences of a subtype in a list
    - ValueSetConstraint: bind a coded value to a value set
    - CodeConstraint: fix a coded value
    - BooleanConstraint: fix a boolean value
    - IncludesCodeConstraint: require a code inside a coded list

ARCHITECTURAL RULE:
    This is a closed set. Code that compares constraints dispatches on
    the concrete class and reads named fields. Never look fields up with getattr.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from specmodel.identifiers import Concept, Identifier
from specmodel.values import Cardinality


Path = Tuple[Identifier, ...]


class BindingStrength(Enum):
    """Enforcement level of a value set binding, strongest first."""

    REQUIRED = "REQUIRED"
    EXTENSIBLE = "EXTENSIBLE"
    PREFERRED = "PREFERRED"
    EXAMPLE = "EXAMPLE"

    @property
    def rank(self) -> int:
        return _STRENGTH_RANK[self]

    def is_weaker_than(self, other: BindingStrength) -> bool:
        return self.rank < other.rank


_STRENGTH_RANK = {
    BindingStrength.EXAMPLE: 0,
    BindingStrength.PREFERRED: 1,
    BindingStrength.EXTENSIBLE: 2,
    BindingStrength.REQUIRED: 3,
}


class Constraint(ABC):
    """Base class of the constraint variants. Structure only."""

    path: Path
    on_value = False


@dataclass(frozen=True)
class CardConstraint(Constraint):
    cardinality: Cardinality
    path: Path = ()


@dataclass(frozen=True)
class TypeConstraint(Constraint):
    """
    Narrow the type at the path to a subtype.

    With on_value set, the narrowing targets the value of the element
    found at the path rather than the field itself.
    """

    target: Identifier
    path: Path = ()
    on_value: bool = False


@dataclass(frozen=True)
class IncludesTypeConstraint(Constraint):
    """
    Require cardinality.min to cardinality.max members of a list to be of
    the target type. A max of 0 forbids the subtype.
    """

    target: Identifier
    cardinality: Cardinality
    path: Path = ()
    on_value: bool = False


@dataclass(frozen=True)
class ValueSetConstraint(Constraint):
    value_set: str
    path: Path = ()
    binding_strength: BindingStrength = BindingStrength.REQUIRED


@dataclass(frozen=True)
class CodeConstraint(Constraint):
    code: Concept
    path: Path = ()


@dataclass(frozen=True)
class BooleanConstraint(Constraint):
    value: bool
    path: Path = ()


@dataclass(frozen=True)
class IncludesCodeConstraint(Constraint):
    code: Concept
    path: Path = ()


@dataclass(frozen=True)
class ValueSetBinding:
    """Effective value set binding on a resolved node."""

    value_set: str
    strength: BindingStrength = BindingStrength.REQUIRED
