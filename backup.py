from __future__ import annotations

import logging
import os
import zipfile
from typing import Any, BinaryIO, Callable, Dict, List, Optional

import yaml

from errors import EncodeError, InvalidRequest, OutputError
from k8s_resource import connect, locate
from normalize import normalize

logger = logging.getLogger("kubectl-backup.backup")

OpenFileFunc = Callable[[str], BinaryIO]


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def open_output(path: str) -> BinaryIO:
    return open(path, "wb")


def manifest_file_name(name: str, kind: str, namespace: str) -> str:
    if namespace:
        return f"{name}_{kind}_{namespace}.yaml"
    return f"{name}_{kind}.yaml"


def archive_file_name(kind: str, namespace: str) -> str:
    if namespace:
        return f"{kind}_{namespace}.zip"
    return f"{kind}.zip"


def encode_manifest(obj: Dict[str, Any]) -> bytes:
    return yaml.safe_dump(
        obj,
        indent=2,
        default_flow_style=False,
        sort_keys=True,
        allow_unicode=True,
        encoding="utf-8",
    )


def _encode(obj: Dict[str, Any], file_name: str) -> bytes:
    try:
        return encode_manifest(obj)
    except yaml.YAMLError as e:
        raise EncodeError(f"error encoding file {file_name}: {e}") from e


def _write_file(open_file: OpenFileFunc, path: str, file_name: str, data: bytes) -> None:
    try:
        with open_file(path) as f:
            f.write(data)
    except OSError as e:
        raise OutputError(f"failed to create file {file_name}: {e}") from e


def _write_entry(archive: zipfile.ZipFile, file_name: str, data: bytes) -> None:
    try:
        archive.writestr(file_name, data)
    except (OSError, ValueError) as e:
        raise OutputError(f"failed to add file {file_name} to zip archive: {e}") from e


# -------------------------------------------------------------------
# Backup
# -------------------------------------------------------------------

def backup_resource(
    resource_kind: str,
    namespace: str,
    directory: str,
    archive: bool = False,
    *,
    cluster=None,
    open_file: OpenFileFunc = open_output,
) -> List[str]:
    """
    Export every object of one kind as a re-appliable YAML manifest.

    One file per object in ``directory``, or one zip archive holding one
    entry per object when ``archive`` is set. Objects are written in list
    order and the first failure aborts the run; whatever was written before
    it stays on disk.

    Returns the manifest names written.
    """
    if cluster is None:
        cluster = connect()

    identity = locate(cluster, resource_kind)
    if not identity.namespaced:
        namespace = ""
    elif not namespace:
        # Listing across namespaces would collide on "{name}_{kind}.yaml".
        raise InvalidRequest(f"{resource_kind} is namespaced, a namespace is required")

    objects = cluster.list_objects(identity, namespace)
    logger.info("found %d %s object(s)", len(objects), resource_kind)

    if not archive:
        return [
            _backup_to_file(obj, resource_kind, namespace, directory, open_file)
            for obj in objects
        ]

    zip_name = archive_file_name(resource_kind, namespace)
    try:
        archive_file = open_file(os.path.join(directory, zip_name))
    except OSError as e:
        raise OutputError(f"error creating archive file {zip_name}: {e}") from e

    written: List[str] = []
    try:
        with archive_file, zipfile.ZipFile(archive_file, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for obj in objects:
                file_name, data = _prepare(obj, resource_kind, namespace)
                _write_entry(zf, file_name, data)
                logger.info("added %s to %s", file_name, zip_name)
                written.append(file_name)
    except OSError as e:
        # The central directory is only written when the archive closes.
        raise OutputError(f"error closing zip archive {zip_name}: {e}") from e
    return written


def _prepare(obj: Dict[str, Any], kind: str, namespace: str):
    normalize(obj)
    name = obj["metadata"].get("name") or ""
    logger.debug("normalized %s %s", kind, name)

    file_name = manifest_file_name(name, kind, namespace)
    return file_name, _encode(obj, file_name)


def _backup_to_file(
    obj: Dict[str, Any],
    kind: str,
    namespace: str,
    directory: str,
    open_file: OpenFileFunc,
) -> str:
    file_name, data = _prepare(obj, kind, namespace)
    _write_file(open_file, os.path.join(directory, file_name), file_name, data)
    logger.info("wrote %s", file_name)
    return file_name


def backup(request, *, cluster=None, open_file: OpenFileFunc = open_output) -> List[str]:
    """
    Run a validated BackupRequest.
    """
    if cluster is None:
        cluster = connect(context=request.context, kubeconfig=request.kubeconfig)

    return backup_resource(
        request.resource.strip(),
        request.namespace,
        request.directory,
        request.archive,
        cluster=cluster,
        open_file=open_file,
    )
