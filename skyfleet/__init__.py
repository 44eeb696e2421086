"""Skyfleet: provisional node bin packing and EC2 fleet provisioning.

Example:
    from skyfleet import Constraints, InstanceType, Offering, ProvisionalNode

    node = ProvisionalNode(constraints, daemon_resources, instance_types)
    node.add(pod)
    k8s_node = await instances.create(node.constraints, node.instance_type_options)
"""

from skyfleet.cloudprovider.types import Constraints, InstanceType, Offering
from skyfleet.config import Options, load_options
from skyfleet.constants import CapacityType, Label, NodeNameConvention, ResourceName
from skyfleet.core.exceptions import (
    FleetRequestError,
    IncompatibleConstraintsError,
    InstanceLookupError,
    InstanceLookupInconsistentError,
    MalformedProviderIDError,
    NoInstanceTypeSatisfiesDemandError,
    NoOfferingsAvailableError,
    ProvisioningError,
    SchedulingError,
    SkyfleetError,
    TerminateError,
    UnrecognizedInstanceTypeError,
    UnsupportedOperatorError,
)
from skyfleet.retry import RetryPolicy
from skyfleet.scheduling.node import ProvisionalNode
from skyfleet.scheduling.requirements import Operator, Requirement, Requirements

__all__ = [
    "CapacityType",
    "Constraints",
    "FleetRequestError",
    "IncompatibleConstraintsError",
    "InstanceLookupError",
    "InstanceLookupInconsistentError",
    "InstanceType",
    "Label",
    "MalformedProviderIDError",
    "NoInstanceTypeSatisfiesDemandError",
    "NoOfferingsAvailableError",
    "NodeNameConvention",
    "Offering",
    "Operator",
    "Options",
    "ProvisionalNode",
    "ProvisioningError",
    "Requirement",
    "Requirements",
    "ResourceName",
    "RetryPolicy",
    "SchedulingError",
    "SkyfleetError",
    "TerminateError",
    "UnrecognizedInstanceTypeError",
    "UnsupportedOperatorError",
    "load_options",
]
