"""Resource model shared by the registration helpers: metadata, conditions and API errors."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

_log = logging.getLogger(__name__)

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"
CONDITION_UNKNOWN = "Unknown"

CERTIFICATE_APPROVED = "Approved"
CERTIFICATE_DENIED = "Denied"
CERTIFICATE_FAILED = "Failed"


@dataclass
class ObjectMeta:
    """Identity and bookkeeping data carried by every resource."""

    name: str = ""
    namespace: str = ""
    generate_name: str = ""
    resource_version: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    finalizers: list[str] = field(default_factory=list)
    deletion_timestamp: datetime | None = None

    @property
    def key(self) -> str:
        """The "namespace/name" form used in messages."""
        return f"{self.namespace}/{self.name}"


@dataclass
class Condition:
    """A status condition of a managed cluster or add-on."""

    type: str
    status: str
    reason: str = ""
    message: str = ""
    observed_generation: int = 0
    last_transition_time: datetime | None = None


@dataclass
class CSRCondition:
    """A condition of a certificate signing request."""

    type: str
    status: str = CONDITION_TRUE
    reason: str = ""
    message: str = ""
    last_update_time: datetime | None = None


@dataclass
class CertificateSigningRequestStatus:
    conditions: list[CSRCondition] = field(default_factory=list)
    certificate: bytes = b""


@dataclass
class CertificateSigningRequest:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    request: bytes = b""
    signer_name: str = ""
    username: str = ""
    usages: list[str] = field(default_factory=list)
    status: CertificateSigningRequestStatus = field(
        default_factory=CertificateSigningRequestStatus
    )


@dataclass
class Secret:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    data: dict[str, bytes] | None = None


@dataclass
class RBACSubject:
    kind: str
    name: str
    namespace: str = ""
    api_group: str = ""


@dataclass
class RoleBinding:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    subjects: list[RBACSubject] = field(default_factory=list)


@dataclass
class ClusterRoleBinding:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    subjects: list[RBACSubject] = field(default_factory=list)


@dataclass
class ManagedClusterStatus:
    conditions: list[Condition] = field(default_factory=list)
    capacity: dict[str, str] = field(default_factory=dict)
    allocatable: dict[str, str] = field(default_factory=dict)
    version: str = ""


@dataclass
class ManagedCluster:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    hub_accepts_client: bool = False
    status: ManagedClusterStatus = field(default_factory=ManagedClusterStatus)


@dataclass
class ManagedClusterAddOnStatus:
    conditions: list[Condition] = field(default_factory=list)


@dataclass
class ManagedClusterAddOn:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    status: ManagedClusterAddOnStatus = field(default_factory=ManagedClusterAddOnStatus)


class NotFoundError(LookupError):
    """The requested resource does not exist."""

    def __init__(self, resource: str, name: str) -> None:
        super().__init__(f'{resource} "{name}" not found')
        self.resource = resource
        self.name = name


class ConflictError(Exception):
    """A write was rejected because the stored object changed in between."""

    def __init__(self, resource: str, name: str, reason: str = "the object has been modified") -> None:
        super().__init__(f'Operation cannot be fulfilled on {resource} "{name}": {reason}')
        self.resource = resource
        self.name = name


@dataclass
class EventRecorder:
    """Collects events emitted by a component and logs them."""

    component: str = ""
    events: list[tuple[str, str]] = field(default_factory=list)

    def event(self, reason: str, message: str) -> None:
        self.events.append((reason, message))
        _log.info("Event: [%s] %s: %s", self.component, reason, message)


def find_status_condition(conditions: list[Condition], condition_type: str) -> Condition | None:
    """Return the condition of the given type, or None."""
    return next((c for c in conditions if c.type == condition_type), None)


def set_status_condition(conditions: list[Condition], new_condition: Condition) -> None:
    """Add or update a condition in place.

    The transition time changes only when the status changes.
    """
    existing = find_status_condition(conditions, new_condition.type)
    if existing is None:
        added = dataclasses.replace(new_condition)
        if added.last_transition_time is None:
            added.last_transition_time = datetime.now(timezone.utc)
        conditions.append(added)
        return

    if existing.status != new_condition.status:
        existing.status = new_condition.status
        existing.last_transition_time = (
            new_condition.last_transition_time
            if new_condition.last_transition_time is not None
            else datetime.now(timezone.utc)
        )
    existing.reason = new_condition.reason
    existing.message = new_condition.message
    existing.observed_generation = new_condition.observed_generation