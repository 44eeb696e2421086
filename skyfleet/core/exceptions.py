"""Custom exception hierarchy for Skyfleet.

All skyfleet-specific exceptions inherit from SkyfleetError, enabling
callers to catch every scheduling and provisioning failure with a single
except clause.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence


class SkyfleetError(Exception):
    """Base exception for all Skyfleet errors."""


class ConfigurationError(SkyfleetError):
    """Raised for invalid configuration or missing required settings."""


class InvariantViolation(SkyfleetError):
    """Raised when an internal invariant does not hold. Not recoverable."""


# =============================================================================
# Scheduling
# =============================================================================


class SchedulingError(SkyfleetError):
    """Raised when a pod cannot be admitted to a provisional node."""


class IncompatibleConstraintsError(SchedulingError):
    """Raised when a pod's requirements conflict with the node's."""

    def __init__(self, keys: Sequence[str]) -> None:
        self.keys = tuple(keys)
        super().__init__(f"incompatible requirements for key(s) {', '.join(self.keys)}")


class UnsupportedOperatorError(SchedulingError):
    """Raised when a node selector requirement uses an operator that cannot be narrowed."""

    def __init__(self, key: str, operator: str) -> None:
        self.key = key
        self.operator = operator
        super().__init__(f"unsupported operator {operator} for key {key}")


class NoInstanceTypeSatisfiesDemandError(SchedulingError):
    """Raised when no candidate instance type fits the merged demand."""

    def __init__(self, requests: str, requirements: str) -> None:
        self.requests = requests
        self.requirements = requirements
        super().__init__(
            f"no instance type satisfied resources {requests} and requirements {requirements}"
        )


# =============================================================================
# Provisioning
# =============================================================================


class ProvisioningError(SkyfleetError):
    """Raised when instance provisioning fails."""


class NoOfferingsAvailableError(ProvisioningError):
    """Raised when no capacity offering survives the constraints."""

    def __init__(self) -> None:
        super().__init__("no capacity offerings are currently available given the constraints")


class FleetRequestError(ProvisioningError):
    """Raised when a fleet request launched nothing.

    ``causes`` holds the unique (code, message) pairs reported by EC2.
    """

    def __init__(self, causes: Iterable[tuple[str, str]]) -> None:
        self.causes = tuple(sorted(set(causes)))
        detail = "; ".join(f"{code}: {message}" for code, message in self.causes)
        super().__init__(f"with fleet error(s), {detail or 'no instance launched'}")


class InstanceLookupError(ProvisioningError):
    """Raised when a launched instance cannot be described.

    The instance exists; the caller still has to account for it.
    """

    def __init__(self, instance_id: str, reason: str) -> None:
        self.instance_id = instance_id
        self.reason = reason
        super().__init__(f"looking up instance {instance_id}, {reason}")


class InstanceLookupInconsistentError(InstanceLookupError):
    """Raised when a described instance lacks its private DNS name."""

    def __init__(self, instance_id: str) -> None:
        super().__init__(instance_id, "PrivateDnsName was not set")


class UnrecognizedInstanceTypeError(InvariantViolation):
    """Raised when EC2 launched a type that was never offered to it."""

    def __init__(self, instance_type: str, instance_id: str, candidates: Sequence[str]) -> None:
        self.instance_type = instance_type
        self.instance_id = instance_id
        self.candidates = tuple(candidates)
        super().__init__(
            f"unrecognized instance type {instance_type} for instance {instance_id}, "
            f"candidates were {', '.join(self.candidates)}"
        )


class MalformedProviderIDError(SkyfleetError, ValueError):
    """Raised when a node's provider id does not carry an instance id."""

    def __init__(self, provider_id: str) -> None:
        self.provider_id = provider_id
        super().__init__(f"parsing instance id {provider_id!r}")


class TerminateError(ProvisioningError):
    """Raised when EC2 rejects a termination for a reason other than not found."""

    def __init__(self, node_name: str, reason: str) -> None:
        self.node_name = node_name
        super().__init__(f"terminating instance {node_name}, {reason}")
