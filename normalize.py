from typing import Any, Dict, List

from errors import MalformedObject


# Assigned by the control plane; rejected or misinterpreted on create.
SERVER_GENERATED_FIELDS = (
    "selfLink",
    "uid",
    "resourceVersion",
    "generation",
    "creationTimestamp",
    "deletionTimestamp",
    "deletionGracePeriodSeconds",
    "managedFields",
)


def remove_status(obj: Dict[str, Any]) -> None:
    obj.pop("status", None)


def remove_server_generated_fields(obj: Dict[str, Any]) -> None:
    md = obj.get("metadata")
    if not isinstance(md, dict):
        raise MalformedObject(
            f"metadata must be a mapping, got {type(md).__name__}"
        )

    for k in SERVER_GENERATED_FIELDS:
        md.pop(k, None)


def remove_null_values(root: Dict[str, Any]) -> None:
    """
    Drop every key whose value is null, at any depth below ``root``.

    Empty mappings are kept: some of them carry meaning (``emptyDir: {}``)
    and there is no generic way to tell those apart without the schema.
    Sequences are walked one level deep; only mapping elements are visited.
    """
    dropped: List[str] = []

    for k, v in root.items():
        if isinstance(v, dict):
            remove_null_values(v)
        elif isinstance(v, list):
            for item in v:
                if isinstance(item, dict):
                    remove_null_values(item)
        elif v is None:
            dropped.append(k)

    for k in dropped:
        del root[k]


def normalize(obj: Dict[str, Any]) -> None:
    """
    Turn a live API object into a manifest that can be re-applied.

    Mutates ``obj`` in place. Running it twice is the same as running it once.
    Raises MalformedObject when ``metadata`` is missing or not a mapping.
    """
    remove_status(obj)
    remove_server_generated_fields(obj)

    spec = obj.get("spec")
    if isinstance(spec, dict):
        remove_null_values(spec)
