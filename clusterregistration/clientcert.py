"""Client certificate checks and kubeconfig construction for the registration agent."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from cryptography import x509
from cryptography.x509.oid import NameOID

from .kube import CERTIFICATE_APPROVED, CERTIFICATE_DENIED, CertificateSigningRequest, Secret

_log = logging.getLogger(__name__)

KUBECONFIG_FILE = "kubeconfig"
TLS_KEY_FILE = "tls.key"
TLS_CERT_FILE = "tls.crt"
CLUSTER_NAME_FILE = "cluster-name"
AGENT_NAME_FILE = "agent-name"

_NO_VALID_CERTS = "data does not contain any valid RSA or ECDSA certificates"


class CertificateError(ValueError):
    """A client certificate is missing or cannot be read."""


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings used as the template of a kubeconfig."""

    host: str
    ca_data: bytes = b""


def _parse_certs_pem(data: bytes | None) -> list[x509.Certificate]:
    try:
        certs = x509.load_pem_x509_certificates(data or b"")
    except ValueError as exc:
        raise CertificateError(_NO_VALID_CERTS) from exc
    if not certs:
        raise CertificateError(_NO_VALID_CERTS)
    return certs


def _common_name(name: x509.Name) -> str:
    attrs = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        return ""
    value = attrs[-1].value
    return value.decode() if isinstance(value, bytes) else value


def has_valid_hub_kubeconfig(secret: Secret, subject: x509.Name | None = None) -> bool:
    """Tell whether the secret holds a kubeconfig, a key and an unexpired certificate.

    When a subject is given, one certificate must carry its common name.
    """
    key = secret.metadata.key
    data = secret.data
    if not data:
        _log.debug("No data found in secret %r", key)
        return False
    for name in (KUBECONFIG_FILE, TLS_KEY_FILE, TLS_CERT_FILE):
        if name not in data:
            _log.debug("No %r found in secret %r", name, key)
            return False
    try:
        return is_certificate_valid(data[TLS_CERT_FILE], subject)
    except CertificateError as exc:
        _log.debug("Unable to validate certificate in secret %s: %s", key, exc)
        return False


def is_certificate_valid(cert_data: bytes | None, subject: x509.Name | None = None) -> bool:
    """Return True if no certificate in the chain is expired and, when a subject
    is given, at least one certificate has its common name.

    Raises CertificateError when the data holds no certificate.
    """
    try:
        certs = _parse_certs_pem(cert_data)
    except CertificateError as exc:
        raise CertificateError("unable to parse certificate") from exc

    now = datetime.now(timezone.utc)
    for cert in certs:
        if now > cert.not_valid_after_utc:
            _log.debug("Part of the certificate is expired: %s", cert.not_valid_after_utc)
            return False

    if subject is None:
        return True

    wanted = _common_name(subject)
    if any(_common_name(cert.subject) == wanted for cert in certs):
        return True
    _log.debug("Certificate is not issued for subject (cn=%s)", wanted)
    return False


def get_cert_validity_period(secret: Secret) -> tuple[datetime, datetime]:
    """Return the (not_before, not_after) window shared by every certificate in the secret."""
    key = secret.metadata.key
    if secret.data is None or TLS_CERT_FILE not in secret.data:
        raise CertificateError(f'no client certificate found in secret "{key}"')
    try:
        certs = _parse_certs_pem(secret.data[TLS_CERT_FILE])
    except CertificateError as exc:
        raise CertificateError(f"unable to parse TLS certificates: {exc}") from exc

    not_before = max(cert.not_valid_before_utc for cert in certs)
    not_after = min(cert.not_valid_after_utc for cert in certs)
    return not_before, not_after


def build_kubeconfig(client_config: ClientConfig, cert_path: str, key_path: str) -> dict[str, Any]:
    """Build a kubeconfig document that authenticates with the given cert/key files."""
    cluster: dict[str, Any] = {"server": client_config.host}
    if client_config.ca_data:
        cluster["certificate-authority-data"] = base64.b64encode(client_config.ca_data).decode("ascii")
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [{"name": "default-cluster", "cluster": cluster}],
        "users": [
            {
                "name": "default-auth",
                "user": {"client-certificate": cert_path, "client-key": key_path},
            }
        ],
        "contexts": [
            {
                "name": "default-context",
                "context": {
                    "cluster": "default-cluster",
                    "user": "default-auth",
                    "namespace": "configuration",
                },
            }
        ],
        "current-context": "default-context",
    }


def is_csr_approved(csr: CertificateSigningRequest) -> bool:
    """Return True if the CSR is approved and not denied."""
    approved = False
    for condition in csr.status.conditions:
        if condition.type == CERTIFICATE_DENIED:
            return False
        if condition.type == CERTIFICATE_APPROVED:
            approved = True
    return approved