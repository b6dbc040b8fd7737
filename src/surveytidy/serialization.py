"""
Serialization helpers for surveytidy objects (design specs and designs).

Design specifications round-trip through an intermediate
dict representation. A whole design serializes one way only, as an audit
description: kind, design variables, grouping state, labels, column names
and row/domain counts. Data values are never serialized.
"""
import json
from typing import Any, Dict

import yaml

from surveytidy.design import (
    DesignVariables,
    LinearizationSpec,
    ReplicateSpec,
    SurveyDesign,
    TwoPhaseSpec,
    design_summary,
)
from surveytidy.metadata import SLOTS, LabelStore


def variables_to_dict(v: DesignVariables) -> Dict[str, Any]:
    return {
        "weights": v.weights,
        "ids": list(v.ids),
        "strata": v.strata,
        "fpc": v.fpc,
        "repweights": list(v.repweights),
        "nest": v.nest,
        "probs": v.probs,
    }


def variables_from_dict(d: Dict[str, Any]) -> DesignVariables:
    return DesignVariables(
        weights=d.get("weights"),
        ids=tuple(d.get("ids", [])),
        strata=d.get("strata"),
        fpc=d.get("fpc"),
        repweights=tuple(d.get("repweights", [])),
        nest=bool(d.get("nest", False)),
        probs=bool(d.get("probs", False)),
    )


def spec_to_dict(spec) -> Dict[str, Any]:
    if isinstance(spec, LinearizationSpec):
        return {"kind": spec.kind.value, "variables": variables_to_dict(spec.variables)}
    if isinstance(spec, ReplicateSpec):
        return {"kind": spec.kind.value, "type": spec.type, "variables": variables_to_dict(spec.variables)}
    if isinstance(spec, TwoPhaseSpec):
        return {
            "kind": spec.kind.value,
            "phase1": variables_to_dict(spec.phase1),
            "phase2": variables_to_dict(spec.phase2),
            "subset": spec.subset,
            "method": spec.method,
        }
    raise TypeError(f"Unsupported design specification: {type(spec)}")


def spec_from_dict(d: Dict[str, Any]):
    kind = d.get("kind")
    if kind == "taylor":
        return LinearizationSpec(variables_from_dict(d["variables"]))
    if kind == "replicate":
        return ReplicateSpec(variables_from_dict(d["variables"]), type=d.get("type", "bootstrap"))
    if kind == "twophase":
        return TwoPhaseSpec(
            phase1=variables_from_dict(d["phase1"]),
            phase2=variables_from_dict(d.get("phase2", {})),
            subset=d["subset"],
            method=d.get("method", "full"),
        )
    raise TypeError(f"Unsupported design spec dict kind: {kind}")


def labels_to_dict(store: LabelStore) -> Dict[str, Any]:
    return {slot: dict(getattr(store, slot)) for slot in SLOTS}


def labels_from_dict(d: Dict[str, Any]) -> LabelStore:
    return LabelStore(**{slot: dict(d.get(slot, {})) for slot in SLOTS})


def design_to_dict(design: SurveyDesign) -> Dict[str, Any]:
    """Audit description of a design. Contains no data values."""
    return {
        "spec": spec_to_dict(design.variables),
        "columns": [str(c) for c in design.data.columns],
        "summary": design_summary(design),
        "domain_log": list(design.domain_log),
        "visible": list(design.visible) if design.visible is not None else None,
        "groups": list(design.groups),
        "rowwise": {"active": design.rowwise.active, "id_columns": list(design.rowwise.id_columns)},
        "labels": labels_to_dict(design.metadata),
    }


def design_to_json(design: SurveyDesign) -> str:
    # Value-label keys become strings in JSON
    return json.dumps(design_to_dict(design), sort_keys=True, default=str)


def design_to_yaml(design: SurveyDesign) -> str:
    return yaml.safe_dump(design_to_dict(design))


def spec_to_yaml(spec) -> str:
    return yaml.safe_dump(spec_to_dict(spec))


def spec_from_yaml(s: str):
    return spec_from_dict(yaml.safe_load(s))


def spec_to_json(spec) -> str:
    return json.dumps(spec_to_dict(spec), sort_keys=True)


def spec_from_json(s: str):
    return spec_from_dict(json.loads(s))
