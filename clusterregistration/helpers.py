"""Status updates, CSR checks and clean-up of managed cluster resources on the hub."""

from __future__ import annotations

import copy
import dataclasses
import random
import re
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

from .kube import (
    CERTIFICATE_APPROVED,
    CERTIFICATE_DENIED,
    CertificateSigningRequestStatus,
    Condition,
    ConflictError,
    EventRecorder,
    NotFoundError,
    set_status_condition,
)

AssetFunc = Callable[[str], bytes]

_RBAC = "rbac.authorization.k8s.io"


class ManifestCleanupError(Exception):
    """One or more manifest resources could not be removed."""

    def __init__(self, errors: list[Exception]) -> None:
        super().__init__("\n".join(str(e) for e in errors))
        self.errors = errors


def _retry_on_conflict(attempt: Callable[[], Any], steps: int = 4) -> Any:
    delay = 0.01
    for step in range(steps):
        try:
            return attempt()
        except ConflictError:
            if step == steps - 1:
                raise
        time.sleep(delay * (1 + random.random() * 0.1))
        delay *= 5.0


def _update_status(get: Callable[[], Any], put: Callable[[Any], Any], update_funcs: tuple) -> tuple[Any, bool]:
    def attempt() -> tuple[Any, bool]:
        obj = get()
        new_status = copy.deepcopy(obj.status)
        for update in update_funcs:
            update(new_status)
        if new_status == obj.status:
            return new_status, False
        obj.status = new_status
        return put(obj).status, True

    return _retry_on_conflict(attempt)


def update_managed_cluster_status(client: Any, cluster_name: str, *update_funcs: Callable) -> tuple[Any, bool]:
    """Apply the update functions to the cluster status and write it back if it changed.

    Returns the resulting status and whether an update was written.
    """
    return _update_status(
        lambda: client.get_managed_cluster(cluster_name), client.update_managed_cluster_status, update_funcs
    )


def update_managed_cluster_condition_fn(cond: Condition) -> Callable:
    """Return an update function that sets the given condition."""
    return lambda status: set_status_condition(status.conditions, cond)


def update_managed_cluster_addon_status(
    client: Any, addon_namespace: str, addon_name: str, *update_funcs: Callable
) -> tuple[Any, bool]:
    """Apply the update functions to the add-on status and write it back if it changed."""
    return _update_status(
        lambda: client.get_managed_cluster_addon(addon_namespace, addon_name),
        client.update_managed_cluster_addon_status,
        update_funcs,
    )


def update_managed_cluster_addon_status_fn(cond: Condition) -> Callable:
    """Return an add-on update function that sets the given condition."""
    return lambda status: set_status_condition(status.conditions, cond)


def is_csr_in_terminal_state(status: CertificateSigningRequestStatus) -> bool:
    """Return True if the CSR has been approved or denied."""
    return any(c.type in (CERTIFICATE_APPROVED, CERTIFICATE_DENIED) for c in status.conditions)


def is_valid_https_url(server_url: str) -> bool:
    """Return True if the string is a URL with the https scheme."""
    try:
        return bool(server_url) and urlsplit(server_url).scheme == "https"
    except ValueError:
        return False


def _delete_manifest_object(client: Any, obj: Mapping[str, Any]) -> str:
    group, _, version = str(obj.get("apiVersion", "")).rpartition("/")
    kind = str(obj.get("kind", ""))
    metadata = obj.get("metadata") or {}
    name = str(metadata.get("name") or "")
    namespace = str(metadata.get("namespace") or "")

    deleters = {
        ("", "Namespace"): lambda: client.delete_namespace(name),
        (_RBAC, "Role"): lambda: client.delete_role(namespace, name),
        (_RBAC, "RoleBinding"): lambda: client.delete_role_binding(namespace, name),
        (_RBAC, "ClusterRole"): lambda: client.delete_cluster_role(name),
        (_RBAC, "ClusterRoleBinding"): lambda: client.delete_cluster_role_binding(name),
    }
    delete = deleters.get((group, kind))
    if delete is None:
        raise ValueError(f"unhandled type *{version}.{kind}")
    delete()
    text = kind.lower() + (f".{group}" if group else "") + f"/{name}"
    return text + (f" -n {namespace}" if namespace else "")


def clean_up_managed_cluster_manifests(client: Any, recorder: EventRecorder, asset_func: AssetFunc, *files: str) -> None:
    """Delete the resources described by the manifest files.

    Missing resources are skipped; other failures are raised together as
    ManifestCleanupError once every file was tried.
    """
    errors: list[Exception] = []
    for file in files:
        try:
            obj = yaml.safe_load(asset_func(file))
            if not isinstance(obj, Mapping) or not obj.get("kind"):
                raise ValueError(f"cannot decode object in {file!r}")
            described = _delete_manifest_object(client, obj)
        except NotFoundError:
            continue
        except Exception as exc:  # every failure is collected and reported
            errors.append(exc)
            continue
        recorder.event(f"ManagedCluster{obj['kind']}Deleted", f"Deleted {described}")
    if errors:
        raise ManifestCleanupError(errors)


def _clean_up_bindings(bindings, group: str, delete, update, recorder: EventRecorder, label, kind: str) -> None:
    for binding in bindings:
        remaining = [s for s in binding.subjects if not (s.kind == "Group" and s.name == group)]
        if not remaining:
            delete(binding)
            recorder.event(f"{kind}Deleted", f"Deleted {kind} {label(binding)}")
        elif len(remaining) != len(binding.subjects):
            update(dataclasses.replace(binding, subjects=remaining))
            recorder.event(f"{kind}Updated", f"Updated {kind} {label(binding)}")


def clean_up_group_from_cluster_role_bindings(client: Any, recorder: EventRecorder, managed_cluster_group: str) -> None:
    """Remove the group from every cluster role binding, deleting bindings left without subjects."""
    _clean_up_bindings(
        client.list_cluster_role_bindings(),
        managed_cluster_group,
        lambda b: client.delete_cluster_role_binding(b.metadata.name),
        client.update_cluster_role_binding,
        recorder,
        lambda b: f'"{b.metadata.name}"',
        "ClusterRoleBinding",
    )


def clean_up_group_from_role_bindings(client: Any, recorder: EventRecorder, managed_cluster_group: str) -> None:
    """Remove the group from every role binding in all namespaces, deleting emptied bindings."""
    _clean_up_bindings(
        client.list_role_bindings(),
        managed_cluster_group,
        lambda b: client.delete_role_binding(b.metadata.namespace, b.metadata.name),
        client.update_role_binding,
        recorder,
        lambda b: f'"{b.metadata.namespace}"/"{b.metadata.name}"',
        "RoleBinding",
    )


_TEMPLATE_ACTION = re.compile(r"(\s*)\{\{(-?)\s*\.(\w+)\s*(-?)\}\}(\s*)")


def managed_cluster_asset_fn(files: Mapping[str, bytes] | Path | str, managed_cluster_name: str) -> AssetFunc:
    """Return an asset function that renders manifest templates for one managed cluster.

    ``files`` is either a mapping of names to contents or a directory.
    """
    values = {"ManagedClusterName": managed_cluster_name}

    def asset(name: str) -> bytes:
        if isinstance(files, Mapping):
            if name not in files:
                raise FileNotFoundError(f"open {name}: file does not exist")
            template = files[name]
        else:
            template = (Path(files) / name).read_bytes()

        def substitute(match: re.Match[str]) -> str:
            lead, trim_left, field_name, trim_right, trail = match.groups()
            if field_name not in values:
                raise ValueError(f"template {name}: can't evaluate field {field_name}")
            return ("" if trim_left else lead) + values[field_name] + ("" if trim_right else trail)

        return _TEMPLATE_ACTION.sub(substitute, template.decode("utf-8")).encode("utf-8")

    return asset