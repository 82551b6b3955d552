"""Feature gates of the registration components."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum


class PreRelease(str, Enum):
    """Maturity stage of a feature."""

    ALPHA = "ALPHA"
    BETA = "BETA"
    GA = ""
    DEPRECATED = "DEPRECATED"


@dataclass(frozen=True)
class FeatureSpec:
    """Default and maturity of one feature."""

    default: bool
    pre_release: PreRelease = PreRelease.GA
    lock_to_default: bool = False


ALL_ALPHA = "AllAlpha"
ALL_BETA = "AllBeta"
_SPECIAL_GATES = {ALL_ALPHA: PreRelease.ALPHA, ALL_BETA: PreRelease.BETA}
_BOOLS = {
    **dict.fromkeys(("1", "t", "T", "TRUE", "true", "True"), True),
    **dict.fromkeys(("0", "f", "F", "FALSE", "false", "False"), False),
}


class FeatureGate:
    """A set of known features and the values they have been switched to."""

    def __init__(self) -> None:
        self._known = {name: FeatureSpec(False, stage) for name, stage in _SPECIAL_GATES.items()}
        self._enabled: dict[str, bool] = {}

    def add(self, features: Mapping[str, FeatureSpec]) -> None:
        """Register features; re-adding one with the same spec is allowed."""
        known = dict(self._known)
        for name, spec in features.items():
            existing = known.setdefault(name, spec)
            if existing != spec:
                raise ValueError(f'feature gate "{name}" with different spec already exists: {existing}')
        self._known = known

    def enabled(self, key: str) -> bool:
        """Return whether a feature is on; unknown features raise KeyError."""
        if key in self._enabled:
            return self._enabled[key]
        if key not in self._known:
            raise KeyError(f'feature "{key}" is not registered in FeatureGate')
        return self._known[key].default

    def set_from_map(self, values: Mapping[str, bool]) -> None:
        """Switch features on or off; nothing changes if any entry is rejected."""
        enabled = dict(self._enabled)
        for key, value in values.items():
            spec = self._known.get(key)
            if spec is None:
                raise ValueError(f"unrecognized feature gate: {key}")
            if spec.lock_to_default and spec.default != value:
                raise ValueError(
                    f"cannot set feature gate {key} to {str(value).lower()}, "
                    f"feature is locked to {str(spec.default).lower()}"
                )
            enabled[key] = value
            stage = _SPECIAL_GATES.get(key)
            for name, other in self._known.items():
                if stage and other.pre_release is stage and name not in enabled and name not in values:
                    enabled[name] = value
        self._enabled = enabled

    def set(self, value: str) -> None:
        """Parse a "Name=bool,Name=bool" string and apply it."""
        parsed: dict[str, bool] = {}
        for item in filter(None, (part.strip() for part in value.split(","))):
            key, sep, raw = (s.strip() for s in item.partition("="))
            if not sep:
                raise ValueError(f"missing bool value for {key}")
            if raw not in _BOOLS:
                raise ValueError(f'invalid value of {key}={raw}, err: parsing "{raw}": invalid syntax')
            parsed[key] = _BOOLS[raw]
        self.set_from_map(parsed)

    def known_features(self) -> list[str]:
        """Describe the non-GA, non-deprecated features, sorted."""
        return sorted(
            f"{name}=true|false ({spec.pre_release.value} - default={str(spec.default).lower()})"
            for name, spec in self._known.items()
            if spec.pre_release not in (PreRelease.GA, PreRelease.DEPRECATED)
        )


CLUSTER_CLAIM = "ClusterClaim"
ADDON_MANAGEMENT = "AddonManagement"

DEFAULT_REGISTRATION_FEATURE_GATES: dict[str, FeatureSpec] = {
    CLUSTER_CLAIM: FeatureSpec(default=True, pre_release=PreRelease.BETA),
    ADDON_MANAGEMENT: FeatureSpec(default=False, pre_release=PreRelease.ALPHA),
}

DEFAULT_MUTABLE_FEATURE_GATE = FeatureGate()
DEFAULT_MUTABLE_FEATURE_GATE.add(DEFAULT_REGISTRATION_FEATURE_GATES)