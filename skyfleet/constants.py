"""Centralized constants and enums for Skyfleet.

Well-known node labels, resource names, and provider limits live here so
the scheduler and the AWS provisioner agree on spelling.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final

# =============================================================================
# Node Labels
# =============================================================================


class Label(StrEnum):
    """Well-known Kubernetes node label keys."""

    ZONE = "topology.kubernetes.io/zone"
    INSTANCE_TYPE = "node.kubernetes.io/instance-type"
    ARCH = "kubernetes.io/arch"
    OS = "kubernetes.io/os"
    HOSTNAME = "kubernetes.io/hostname"
    CAPACITY_TYPE = "karpenter.sh/capacity-type"


class CapacityType(StrEnum):
    """Capacity purchasing modes."""

    SPOT = "spot"
    ON_DEMAND = "on-demand"


class NodeNameConvention(StrEnum):
    """How a launched instance is turned into a node name."""

    IP_NAME = "ip-name"
    RESOURCE_NAME = "resource-name"


# =============================================================================
# Resource Names
# =============================================================================


class ResourceName(StrEnum):
    """Resource names tracked during bin packing."""

    CPU = "cpu"
    MEMORY = "memory"
    PODS = "pods"
    EPHEMERAL_STORAGE = "ephemeral-storage"
    NVIDIA_GPU = "nvidia.com/gpu"
    AMD_GPU = "amd.com/gpu"
    AWS_NEURON = "aws.amazon.com/neuron"


ACCELERATOR_RESOURCES: Final = (
    ResourceName.NVIDIA_GPU,
    ResourceName.AMD_GPU,
    ResourceName.AWS_NEURON,
)

NODE_RESOURCES: Final = (
    ResourceName.PODS,
    ResourceName.CPU,
    ResourceName.MEMORY,
    ResourceName.EPHEMERAL_STORAGE,
    *ACCELERATOR_RESOURCES,
)

# EC2 architecture name -> Kubernetes architecture name
AWS_TO_KUBE_ARCHITECTURES: Final[dict[str, str]] = {
    "x86_64": "amd64",
    "arm64": "arm64",
}

OPERATING_SYSTEM_LINUX: Final = "linux"

# =============================================================================
# EC2
# =============================================================================

PROVIDER_ID_SCHEME: Final = "aws"
INSUFFICIENT_CAPACITY_ERROR_CODE: Final = "InsufficientInstanceCapacity"
INSTANCE_NOT_FOUND_ERROR_CODE: Final = "InvalidInstanceID.NotFound"

# CreateFleet accepts a bounded number of overrides per request
MAX_INSTANCE_TYPES: Final = 20

# https://docs.aws.amazon.com/AWSEC2/latest/APIReference/throttling.html#throttling-limits
CREATION_QPS: Final = 2
CREATION_BURST: Final = 100

INSTANCE_LOOKUP_DELAY: Final = 1.0
INSTANCE_LOOKUP_ATTEMPTS: Final = 6

UNAVAILABLE_OFFERINGS_TTL: Final = 180.0
UNAVAILABLE_OFFERINGS_MAXSIZE: Final = 10_000
