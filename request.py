from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from errors import InvalidRequest


DEFAULT_NAMESPACE = "default"


# -----------------------------
# Request
# -----------------------------
@dataclass(frozen=True)
class BackupRequest:
    resource: str
    namespace: str = DEFAULT_NAMESPACE
    directory: str = "."
    archive: bool = False
    context: Optional[str] = None
    kubeconfig: Optional[str] = None


# -----------------------------
# Validators
# -----------------------------
def validate_resource(resource: Optional[str]) -> None:
    if not isinstance(resource, str) or not resource.strip():
        raise InvalidRequest("a resource kind is required, e.g. deployment")


def validate_namespace(namespace: Optional[str]) -> None:
    if namespace is not None and not namespace.strip():
        raise InvalidRequest("namespace must not be empty")


def validate_directory(directory: str) -> None:
    if not os.path.exists(directory):
        raise InvalidRequest(f"{directory} does not exist")
    if not os.path.isdir(directory):
        raise InvalidRequest(f"{directory} is not a directory")


# -----------------------------
# Single Enforcement Entry
# -----------------------------
def validate_request(request: BackupRequest) -> None:
    """
    Fail-closed check run before any cluster call.
    """
    validate_resource(request.resource)
    validate_namespace(request.namespace)
    validate_directory(request.directory)
