"""
Data element builder.

The grammar constructs elements with chained calls. A builder holds a
mutable draft while those calls arrive, then freezes it into an
immutable DataElement ready for registration.
"""

from __future__ import annotations

from typing import List, Optional, Union

from specmodel.exceptions import BuilderError
from specmodel.identifiers import Concept, Identifier
from specmodel.model import BasedOn, DataElement
from specmodel.values import TBD, Value


class DataElementBuilder:
    """
    Mutable draft of a DataElement.

    Example:
        group = (
            DataElementBuilder(Identifier("shr.test", "Group"), is_entry=True)
            .with_description("It is a group of elements")
            .with_field(IdentifiableValue(simple_id).with_min_max(1, 1))
            .build()
        )
    """

    def __init__(self, identifier: Identifier, is_entry: bool = False, is_abstract: bool = False):
        if identifier is None or identifier.is_primitive:
            raise BuilderError(f"Data element needs a non-primitive identifier, got {identifier!r}")
        self.identifier = identifier
        self.is_entry = is_entry
        self.is_abstract = is_abstract
        self.description: Optional[str] = None
        self.based_on: List[BasedOn] = []
        self.concepts: List[Union[Concept, TBD]] = []
        self.value: Optional[Value] = None
        self.fields: List[Value] = []

    def with_based_on(self, parent: BasedOn) -> DataElementBuilder:
        if not isinstance(parent, (Identifier, TBD)):
            raise BuilderError(f"Based on must be an Identifier or TBD, got {type(parent).__name__}")
        self.based_on.append(parent)
        return self

    def with_description(self, description: str) -> DataElementBuilder:
        self.description = description
        return self

    def with_concept(self, concept: Union[Concept, TBD]) -> DataElementBuilder:
        self.concepts.append(concept)
        return self

    def with_value(self, value: Value) -> DataElementBuilder:
        self.value = value
        return self

    def with_field(self, field: Value) -> DataElementBuilder:
        self.fields.append(field)
        return self

    def build(self) -> DataElement:
        return DataElement(
            identifier=self.identifier,
            is_entry=self.is_entry,
            is_abstract=self.is_abstract,
            description=self.description,
            based_on=tuple(self.based_on),
            concepts=tuple(self.concepts),
            value=self.value,
            fields=tuple(self.fields),
        )
