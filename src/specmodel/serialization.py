"""
Serialization helpers for specmodel objects (Specifications, DataElement, Value, Constraint).

Provides lossless JSON/YAML round-trip via intermediate dict representation.
Parents stay identifiers in the output, so a registry serializes as a flat
list of elements with no object graph to rebuild.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Optional

import yaml

from specmodel.constraints import (
    BindingStrength,
    BooleanConstraint,
    CardConstraint,
    CodeConstraint,
    Constraint,
    IncludesCodeConstraint,
    IncludesTypeConstraint,
    TypeConstraint,
    ValueSetConstraint,
)
from specmodel.identifiers import Concept, Identifier, Namespace, PrimitiveIdentifier
from specmodel.model import DataElement, Specifications
from specmodel.values import TBD, Cardinality, ChoiceValue, IdentifiableValue, RefValue, Value


def identifier_to_dict(i: Identifier) -> Dict[str, Any]:
    return {"namespace": i.namespace, "name": i.name}


def identifier_from_dict(d: Dict[str, Any]) -> Identifier:
    identifier = Identifier(d["namespace"], d["name"])
    if identifier.is_primitive:
        return PrimitiveIdentifier(d["name"])
    return identifier


def cardinality_to_dict(c: Optional[Cardinality]) -> Optional[Dict[str, Any]]:
    if c is None:
        return None
    return {"min": c.min, "max": c.max}


def cardinality_from_dict(d: Optional[Dict[str, Any]]) -> Optional[Cardinality]:
    if d is None:
        return None
    return Cardinality(d["min"], d.get("max"))


def concept_to_dict(c: Concept) -> Dict[str, Any]:
    return {"system": c.system, "code": c.code, "display": c.display}


def concept_from_dict(d: Dict[str, Any]) -> Concept:
    return Concept(d["system"], d["code"], d.get("display"))


def _path_to_list(path) -> list:
    return [identifier_to_dict(p) for p in path]


def _path_from_list(items) -> tuple:
    return tuple(identifier_from_dict(p) for p in items or [])


def constraint_to_dict(c: Constraint) -> Dict[str, Any]:
    d: Dict[str, Any]
    if isinstance(c, CardConstraint):
        d = {"type": "card", "cardinality": cardinality_to_dict(c.cardinality)}
    elif isinstance(c, TypeConstraint):
        d = {"type": "type", "target": identifier_to_dict(c.target), "on_value": c.on_value}
    elif isinstance(c, IncludesTypeConstraint):
        d = {
            "type": "includes_type",
            "target": identifier_to_dict(c.target),
            "cardinality": cardinality_to_dict(c.cardinality),
            "on_value": c.on_value,
        }
    elif isinstance(c, ValueSetConstraint):
        d = {"type": "value_set", "value_set": c.value_set, "binding_strength": c.binding_strength.value}
    elif isinstance(c, CodeConstraint):
        d = {"type": "code", "code": concept_to_dict(c.code)}
    elif isinstance(c, BooleanConstraint):
        d = {"type": "boolean", "value": c.value}
    elif isinstance(c, IncludesCodeConstraint):
        d = {"type": "includes_code", "code": concept_to_dict(c.code)}
    else:
        raise TypeError(f"Unsupported Constraint type: {type(c)}")
    d["path"] = _path_to_list(c.path)
    return d


def constraint_from_dict(d: Dict[str, Any]) -> Constraint:
    t = d.get("type")
    path = _path_from_list(d.get("path"))
    if t == "card":
        return CardConstraint(cardinality_from_dict(d["cardinality"]), path)
    if t == "type":
        return TypeConstraint(identifier_from_dict(d["target"]), path, d.get("on_value", False))
    if t == "includes_type":
        return IncludesTypeConstraint(
            identifier_from_dict(d["target"]),
            cardinality_from_dict(d["cardinality"]),
            path,
            d.get("on_value", False),
        )
    if t == "value_set":
        strength = BindingStrength(d.get("binding_strength", BindingStrength.REQUIRED.value))
        return ValueSetConstraint(d["value_set"], path, strength)
    if t == "code":
        return CodeConstraint(concept_from_dict(d["code"]), path)
    if t == "boolean":
        return BooleanConstraint(d["value"], path)
    if t == "includes_code":
        return IncludesCodeConstraint(concept_from_dict(d["code"]), path)
    raise TypeError(f"Unsupported constraint dict type: {t}")


def value_to_dict(v: Optional[Value]) -> Any:
    if v is None:
        return None
    if isinstance(v, IdentifiableValue):
        d: Dict[str, Any] = {"type": "identifiable", "target": identifier_to_dict(v.target)}
    elif isinstance(v, RefValue):
        d = {"type": "ref", "target": identifier_to_dict(v.target)}
    elif isinstance(v, ChoiceValue):
        d = {"type": "choice", "options": [value_to_dict(o) for o in v.options]}
    elif isinstance(v, TBD):
        d = {"type": "tbd", "text": v.text}
    else:
        raise TypeError(f"Unsupported Value type: {type(v)}")
    d["cardinality"] = cardinality_to_dict(v.cardinality)
    d["constraints"] = [constraint_to_dict(c) for c in v.constraints]
    return d


def value_from_dict(d: Any) -> Optional[Value]:
    if d is None:
        return None
    t = d.get("type")
    cardinality = cardinality_from_dict(d.get("cardinality"))
    constraints = tuple(constraint_from_dict(c) for c in d.get("constraints", []))
    if t == "identifiable":
        return IdentifiableValue(identifier_from_dict(d["target"]), cardinality, constraints)
    if t == "ref":
        return RefValue(identifier_from_dict(d["target"]), cardinality, constraints)
    if t == "choice":
        options = tuple(value_from_dict(o) for o in d.get("options", []))
        return ChoiceValue(options, cardinality, constraints)
    if t == "tbd":
        return TBD(d.get("text"), cardinality, constraints)
    raise TypeError(f"Unsupported value dict type: {t}")


def element_to_dict(de: DataElement) -> Dict[str, Any]:
    return {
        "identifier": identifier_to_dict(de.identifier),
        "is_entry": de.is_entry,
        "is_abstract": de.is_abstract,
        "description": de.description,
        # Identifiers have no "type" key; TBD placeholders do.
        "based_on": [
            value_to_dict(p) if isinstance(p, TBD) else identifier_to_dict(p) for p in de.based_on
        ],
        "concepts": [
            value_to_dict(c) if isinstance(c, TBD) else concept_to_dict(c) for c in de.concepts
        ],
        "value": value_to_dict(de.value),
        "fields": [value_to_dict(f) for f in de.fields],
    }


def element_from_dict(d: Dict[str, Any]) -> DataElement:
    return DataElement(
        identifier=identifier_from_dict(d["identifier"]),
        is_entry=d.get("is_entry", False),
        is_abstract=d.get("is_abstract", False),
        description=d.get("description"),
        based_on=tuple(
            value_from_dict(p) if "type" in p else identifier_from_dict(p) for p in d.get("based_on", [])
        ),
        concepts=tuple(
            value_from_dict(c) if "type" in c else concept_from_dict(c) for c in d.get("concepts", [])
        ),
        value=value_from_dict(d.get("value")),
        fields=tuple(value_from_dict(f) for f in d.get("fields", [])),
    )


def specifications_to_dict(specs: Specifications) -> Dict[str, Any]:
    return {
        "namespaces": [{"name": ns.name, "description": ns.description} for ns in specs.namespaces],
        "elements": [element_to_dict(de) for de in specs.elements()],
    }


def specifications_from_dict(d: Dict[str, Any]) -> Specifications:
    specs = Specifications()
    for ns in d.get("namespaces", []):
        specs.add_namespace(Namespace(ns["name"], ns.get("description")))
    for de in d.get("elements", []):
        specs.add_element(element_from_dict(de))
    return specs


def specifications_to_json(specs: Specifications) -> str:
    return json.dumps(specifications_to_dict(specs), sort_keys=True)


def specifications_from_json(s: str) -> Specifications:
    d = json.loads(s)
    return specifications_from_dict(d)


def specifications_to_yaml(specs: Specifications) -> str:
    return yaml.safe_dump(specifications_to_dict(specs))


def specifications_from_yaml(s: str) -> Specifications:
    d = yaml.safe_load(s)
    return specifications_from_dict(d)
