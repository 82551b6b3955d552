# clusterregistration

Building blocks for registering managed clusters with a hub: checking the
client certificate an agent holds, switching optional features on and off,
keeping the status conditions of managed clusters and their add-ons up to
date, and removing what a managed cluster leaves behind on the hub.

The package depends on `cryptography` (version 42 or later) and `pyyaml`.
The test suite uses pytest and is pulled in by the `test` extra.

## Modules

### `clusterregistration.kube`

Plain dataclasses for the resources the helpers work on: `ObjectMeta`,
`Secret`, `CertificateSigningRequest` (with `CertificateSigningRequestStatus`
and `CSRCondition`), `RBACSubject`, `RoleBinding`, `ClusterRoleBinding`,
`ManagedCluster` / `ManagedClusterStatus`, `ManagedClusterAddOn` /
`ManagedClusterAddOnStatus` and `Condition`.

- `set_status_condition(conditions, new_condition)` adds a condition or
  updates one of the same type in place. The transition time changes only
  when the status changes. A newly added condition without a time gets the
  current UTC time.
- `find_status_condition(conditions, condition_type)` returns the matching
  condition or `None`.
- `NotFoundError` and `ConflictError` are the errors a client raises for a
  missing object and for a write that lost a race.
- `EventRecorder` keeps the `(reason, message)` pairs passed to `event()` in
  its `events` list and logs each one.

### `clusterregistration.clientcert`

- `is_certificate_valid(cert_data, subject)` is true when no certificate in
  the PEM chain has expired. When a subject (`cryptography.x509.Name`) is
  given, at least one certificate must also carry its common name. Data
  without any certificate raises `CertificateError`.
- `has_valid_hub_kubeconfig(secret, subject)` checks that a `Secret` holds
  `kubeconfig`, `tls.key` and `tls.crt`, and that the certificate is valid in
  the sense above. It returns `False` instead of raising.
- `get_cert_validity_period(secret)` returns `(not_before, not_after)`: the
  latest start and the earliest end over all certificates in `tls.crt`. It
  raises `CertificateError` when there is no certificate or it cannot be
  parsed.
- `build_kubeconfig(client_config, cert_path, key_path)` returns a kubeconfig
  document as a dict, ready for `yaml.safe_dump`. `client_config` is a
  `ClientConfig(host, ca_data)`.
- `is_csr_approved(csr)` is true when the CSR has an `Approved` condition and
  no `Denied` one.

### `clusterregistration.features`

`FeatureGate` holds known features (`FeatureSpec(default, pre_release,
lock_to_default)` with `PreRelease` ALPHA, BETA, GA or DEPRECATED) and the
values they have been switched to:

- `add(features)` registers features. Re-adding a feature with a different
  spec raises `ValueError`.
- `set("Name=true,Other=false")` and `set_from_map({...})` switch features.
  Unknown names, bad booleans and changes to locked features raise
  `ValueError`, and nothing is applied. The special gates `AllAlpha` and
  `AllBeta` switch every alpha or beta feature that is not set explicitly.
- `enabled(key)` returns the current value. Unknown features raise
  `KeyError`.
- `known_features()` describes the alpha and beta features, sorted.

`DEFAULT_REGISTRATION_FEATURE_GATES` defines `ClusterClaim` (beta, on by
default) and `AddonManagement` (alpha, off by default).
`DEFAULT_MUTABLE_FEATURE_GATE` is a gate with both already added.

### `clusterregistration.helpers`

- `update_managed_cluster_status(client, cluster_name, *update_funcs)` and
  `update_managed_cluster_addon_status(client, namespace, name,
  *update_funcs)` fetch the object and apply the update functions to a copy
  of its status. They write the status back only if it changed, and retry up
  to four times on `ConflictError`. They return `(status, updated)`.
  `update_managed_cluster_condition_fn(cond)` and
  `update_managed_cluster_addon_status_fn(cond)` make update functions that
  set one condition.
- `is_csr_in_terminal_state(status)` is true once a CSR is approved or denied.
- `is_valid_https_url(url)` is true for a non-empty URL with the `https`
  scheme.
- `clean_up_managed_cluster_manifests(client, recorder, asset_func, *files)`
  loads each manifest (YAML or JSON) and deletes the Namespace, Role,
  RoleBinding, ClusterRole or ClusterRoleBinding it describes. Objects that
  are already gone are skipped. Every other failure, including
  `unhandled type` for other kinds, is collected and raised at the end as
  `ManifestCleanupError`.
- `clean_up_group_from_cluster_role_bindings(client, recorder, group)` and
  `clean_up_group_from_role_bindings(client, recorder, group)` remove the
  `Group` subject from every binding. A binding left with no subjects is
  deleted.
- `managed_cluster_asset_fn(files, managed_cluster_name)` returns an asset
  function. It reads a manifest from a mapping or a directory and fills in
  `{{ .ManagedClusterName }}`.

The helpers do not talk to an API server themselves. `client` is any object
with the methods they call: `get_managed_cluster`,
`update_managed_cluster_status`, `get_managed_cluster_addon`,
`update_managed_cluster_addon_status`, `delete_namespace`, `delete_role`,
`delete_role_binding`, `delete_cluster_role`,
`delete_cluster_role_binding`, `list_cluster_role_bindings`,
`update_cluster_role_binding`, `list_role_bindings` and
`update_role_binding`. Each is used as its name says. Each raises
`NotFoundError` or `ConflictError` where appropriate.

## Example

```python
from clusterregistration.features import DEFAULT_REGISTRATION_FEATURE_GATES, FeatureGate
from clusterregistration.helpers import update_managed_cluster_condition_fn
from clusterregistration.kube import Condition, ManagedClusterStatus

gate = FeatureGate()
gate.add(DEFAULT_REGISTRATION_FEATURE_GATES)
gate.set("AddonManagement=true")
assert gate.enabled("AddonManagement") and gate.enabled("ClusterClaim")

status = ManagedClusterStatus()
joined = Condition("ManagedClusterJoined", "True", "ManagedClusterJoined", "Managed cluster joined")
update_managed_cluster_condition_fn(joined)(status)
assert status.conditions[0].status == "True"
```

## What it does not do

This is a library only. It has no command to start, and it runs no hub
controllers, registration agent or admission webhook. It ships no client for
a cluster API: the caller supplies the client object described above and
the storage behind it.