"""Parsing of EC2 DescribeInstanceTypes records into InstanceType.

The catalog that pages through DescribeInstanceTypes, prices the results and
keeps them sorted lives outside this package; it hands raw records and
offerings to parse_instance_type.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from decimal import Decimal
from typing import Any, Final

from skyfleet.cloudprovider.types import InstanceType, Offering
from skyfleet.constants import (
    AWS_TO_KUBE_ARCHITECTURES,
    OPERATING_SYSTEM_LINUX,
    ResourceName,
)

MIB: Final = 1024 * 1024

# Share of instance memory the hypervisor keeps for itself
VM_MEMORY_OVERHEAD: Final = Decimal("0.075")

DEFAULT_EPHEMERAL_STORAGE_GIB: Final = 20

# kube-reserved cpu: (range start millicores, range end millicores, fraction)
_CPU_RESERVED_RANGES: Final = (
    (0, 1000, Decimal("0.06")),
    (1000, 2000, Decimal("0.01")),
    (2000, 4000, Decimal("0.005")),
    (4000, 1 << 31, Decimal("0.0025")),
)

_NVIDIA: Final = "nvidia"
_AMD: Final = "amd"


def eni_limited_pods(raw: dict[str, Any]) -> int:
    """Pods an instance can host with one IP per pod from its ENIs."""
    net = raw.get("NetworkInfo", {})
    enis = net.get("MaximumNetworkInterfaces", 0)
    ips_per_eni = net.get("Ipv4AddressesPerInterface", 0)
    if not enis or not ips_per_eni:
        return 110
    return enis * (ips_per_eni - 1) + 2


def _accelerators(raw: dict[str, Any]) -> dict[str, Decimal]:
    counts: dict[str, Decimal] = {}
    for gpu in raw.get("GpuInfo", {}).get("Gpus", []):
        manufacturer = gpu.get("Manufacturer", "").lower()
        if manufacturer == _NVIDIA:
            name = ResourceName.NVIDIA_GPU
        elif manufacturer == _AMD:
            name = ResourceName.AMD_GPU
        else:
            continue
        counts[name] = counts.get(name, Decimal(0)) + gpu.get("Count", 0)

    # Inferentia devices report through InferenceAcceleratorInfo, Trainium through NeuronInfo
    neuron = sum(
        acc.get("Count", 0)
        for acc in raw.get("InferenceAcceleratorInfo", {}).get("Accelerators", [])
        if acc.get("Manufacturer", "").lower() == "aws"
    )
    neuron += sum(d.get("Count", 0) for d in raw.get("NeuronInfo", {}).get("NeuronDevices", []))
    if neuron:
        counts[ResourceName.AWS_NEURON] = Decimal(neuron)
    return counts


def _overhead(cpu_millis: int, pods: int) -> dict[str, Decimal]:
    reserved_cpu = Decimal(100)  # system-reserved
    for start, end, fraction in _CPU_RESERVED_RANGES:
        if cpu_millis >= start:
            span = min(cpu_millis, end) - start
            reserved_cpu += Decimal(int(span * fraction))

    reserved_memory_mib = (
        (11 * pods + 255)  # kube-reserved
        + 100  # system-reserved
        + 100  # eviction threshold
    )
    return {
        ResourceName.CPU: reserved_cpu / 1000,
        ResourceName.MEMORY: Decimal(reserved_memory_mib * MIB),
    }


def parse_instance_type(raw: dict[str, Any], offerings: Iterable[Offering]) -> InstanceType:
    """Build an InstanceType from a DescribeInstanceTypes record."""
    name = raw["InstanceType"]
    vcpus = raw.get("VCpuInfo", {}).get("DefaultVCpus", 0)
    memory_mib = raw.get("MemoryInfo", {}).get("SizeInMiB", 0)

    archs = raw.get("ProcessorInfo", {}).get("SupportedArchitectures", [])
    architecture = next((AWS_TO_KUBE_ARCHITECTURES[a] for a in archs if a in AWS_TO_KUBE_ARCHITECTURES), "amd64")

    pods = eni_limited_pods(raw)
    usable_memory = Decimal(memory_mib) * (1 - VM_MEMORY_OVERHEAD)
    resources: dict[str, Decimal] = {
        ResourceName.CPU: Decimal(vcpus),
        ResourceName.MEMORY: Decimal(math.floor(usable_memory)) * MIB,
        ResourceName.PODS: Decimal(pods),
        ResourceName.EPHEMERAL_STORAGE: Decimal(DEFAULT_EPHEMERAL_STORAGE_GIB * 1024 * MIB),
        **_accelerators(raw),
    }

    return InstanceType(
        name=name,
        resources=resources,
        offerings=tuple(offerings),
        architecture=architecture,
        operating_systems=frozenset({OPERATING_SYSTEM_LINUX}),
        overhead=_overhead(vcpus * 1000, pods),
    )
