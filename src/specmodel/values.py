"""
Value Model

A Value describes what may sit in an element's value slot or in one of
its fields. It is one of:
    - IdentifiableValue: points at a primitive or an element
    - RefValue: indirection to an entry element
    - ChoiceValue: exactly one of several options applies
    - TBD: placeholder for schema authoring still pending

Every value carries a cardinality and an ordered tuple of constraints.

ARCHITECTURAL RULE:
    Values are immutable.
    The fluent helpers (with_min_max, with_constraint, ...) return copies,
    so the grammar can chain calls without mutating shared records.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, List, Optional, Tuple

from specmodel.exceptions import InvalidCardinalityError
from specmodel.identifiers import Identifier

if TYPE_CHECKING:
    from specmodel.constraints import Constraint


@dataclass(frozen=True)
class Cardinality:
    """
    Occurrence range of a value.

    Properties:
        min: Lower bound, non-negative
        max: Upper bound, or None for unbounded

    Examples:
        Cardinality(1, 1)   -> exactly one
        Cardinality(0)      -> zero or more
    """

    min: int = 0
    max: Optional[int] = None

    def __post_init__(self):
        if self.min is None or self.min < 0:
            raise InvalidCardinalityError(self.min, self.max)
        if self.max is not None and self.max < self.min:
            raise InvalidCardinalityError(self.min, self.max)

    @property
    def is_unbounded(self) -> bool:
        return self.max is None

    @property
    def is_list(self) -> bool:
        return self.max is None or self.max > 1

    @property
    def is_prohibited(self) -> bool:
        return self.max == 0

    def fits_within(self, other: Cardinality) -> bool:
        """True if this range is the same as or narrower than other."""
        if self.min < other.min:
            return False
        if other.max is None:
            return True
        return self.max is not None and self.max <= other.max

    def intersect(self, other: Cardinality) -> Optional[Cardinality]:
        """Overlap of both ranges, or None when they are disjoint."""
        low = max(self.min, other.min)
        if self.max is None:
            high = other.max
        elif other.max is None:
            high = self.max
        else:
            high = min(self.max, other.max)
        if high is not None and high < low:
            return None
        return Cardinality(low, high)

    def scale(self, outer: Cardinality) -> Cardinality:
        """Range of this value repeated outer times (nested choices)."""
        if self.max is None or outer.max is None:
            high = None
        else:
            high = self.max * outer.max
        return Cardinality(self.min * outer.min, high)

    def __str__(self) -> str:
        return f"{self.min}..{'*' if self.max is None else self.max}"


class Value(ABC):
    """
    Base class for all value descriptions.

    Subclasses are frozen dataclasses declaring their own fields;
    this class only provides the shared copy-returning helpers.
    """

    cardinality: Optional[Cardinality]
    constraints: Tuple["Constraint", ...]

    def with_cardinality(self, cardinality: Optional[Cardinality]):
        return replace(self, cardinality=cardinality)

    def with_min_max(self, min_value: int, max_value: Optional[int] = None):
        return replace(self, cardinality=Cardinality(min_value, max_value))

    def with_constraint(self, constraint: "Constraint"):
        return replace(self, constraints=self.constraints + (constraint,))

    @property
    def identifier(self) -> Optional[Identifier]:
        return None

    @property
    def is_list(self) -> bool:
        return self.cardinality is not None and self.cardinality.is_list


@dataclass(frozen=True)
class IdentifiableValue(Value):
    """
    Value pointing at a primitive or a data element.

    Example:
        IdentifiableValue(primitive("string")).with_min_max(1, 1)
    """

    target: Identifier
    cardinality: Optional[Cardinality] = None
    constraints: Tuple["Constraint", ...] = ()

    @property
    def identifier(self) -> Identifier:
        return self.target


@dataclass(frozen=True)
class RefValue(Value):
    """
    Reference to an entry element.

    Consumers treat this as an indirection, never as inline inclusion,
    so resolution does not descend through it.
    """

    target: Identifier
    cardinality: Optional[Cardinality] = None
    constraints: Tuple["Constraint", ...] = ()

    @property
    def identifier(self) -> Identifier:
        return self.target


@dataclass(frozen=True)
class ChoiceValue(Value):
    """
    A value position where exactly one option applies.

    Options may themselves be choices; nesting depth is not limited.
    """

    options: Tuple[Value, ...] = ()
    cardinality: Optional[Cardinality] = None
    constraints: Tuple["Constraint", ...] = ()

    def with_option(self, option: Value) -> ChoiceValue:
        return replace(self, options=self.options + (option,))

    def aggregate_options(self) -> List[Value]:
        """Leaf options, flattening nested choices in declaration order."""
        leaves: List[Value] = []
        for option in self.options:
            if isinstance(option, ChoiceValue):
                leaves.extend(option.aggregate_options())
            else:
                leaves.append(option)
        return leaves

    def matching_options(self, identifier: Identifier) -> List[Value]:
        return [o for o in self.aggregate_options() if o.identifier == identifier]


@dataclass(frozen=True)
class TBD(Value):
    """
    Placeholder signalling incomplete schema authoring.

    Also accepted as a based-on parent and as a concept placeholder.
    """

    text: Optional[str] = None
    cardinality: Optional[Cardinality] = None
    constraints: Tuple["Constraint", ...] = ()
