from __future__ import annotations

from decimal import Decimal

import pytest

from skyfleet.cloudprovider.types import Offering
from skyfleet.constants import ResourceName
from skyfleet.providers.aws import parse_instance_type
from skyfleet.providers.aws.instance_types import eni_limited_pods

pytestmark = [pytest.mark.xdist_group("unit")]

MIB = 1024 * 1024

M5_LARGE = {
    "InstanceType": "m5.large",
    "VCpuInfo": {"DefaultVCpus": 2},
    "MemoryInfo": {"SizeInMiB": 8192},
    "ProcessorInfo": {"SupportedArchitectures": ["x86_64"]},
    "NetworkInfo": {"MaximumNetworkInterfaces": 3, "Ipv4AddressesPerInterface": 10},
}


class TestEniLimitedPods:
    def test_from_network_info(self):
        assert eni_limited_pods(M5_LARGE) == 29

    def test_missing_network_info_defaults(self):
        assert eni_limited_pods({}) == 110


class TestParseInstanceType:
    def test_general_purpose(self):
        offerings = [Offering("us-east-1a", "spot")]
        it = parse_instance_type(M5_LARGE, offerings)

        assert it.name == "m5.large"
        assert it.architecture == "amd64"
        assert it.operating_systems == frozenset({"linux"})
        assert it.offerings == (Offering("us-east-1a", "spot"),)
        assert it.resources[ResourceName.CPU] == Decimal(2)
        assert it.resources[ResourceName.MEMORY] == Decimal(7577 * MIB)
        assert it.resources[ResourceName.PODS] == Decimal(29)
        assert it.resources[ResourceName.EPHEMERAL_STORAGE] == Decimal(20 * 1024 * MIB)
        assert not it.has_accelerator

    def test_overhead(self):
        it = parse_instance_type(M5_LARGE, [])
        assert it.overhead[ResourceName.CPU] == Decimal("0.17")
        assert it.overhead[ResourceName.MEMORY] == Decimal((11 * 29 + 255 + 100 + 100) * MIB)

    def test_arm(self):
        raw = {**M5_LARGE, "InstanceType": "m6g.large", "ProcessorInfo": {"SupportedArchitectures": ["arm64"]}}
        assert parse_instance_type(raw, []).architecture == "arm64"

    def test_nvidia_gpus(self):
        raw = {**M5_LARGE, "InstanceType": "p3.8xlarge", "GpuInfo": {"Gpus": [{"Manufacturer": "NVIDIA", "Count": 4}]}}
        it = parse_instance_type(raw, [])
        assert it.resources[ResourceName.NVIDIA_GPU] == Decimal(4)
        assert it.has_accelerator

    def test_amd_gpus(self):
        raw = {**M5_LARGE, "InstanceType": "g4ad.xlarge", "GpuInfo": {"Gpus": [{"Manufacturer": "AMD", "Count": 1}]}}
        assert parse_instance_type(raw, []).resources[ResourceName.AMD_GPU] == Decimal(1)

    def test_inferentia(self):
        raw = {
            **M5_LARGE,
            "InstanceType": "inf1.xlarge",
            "InferenceAcceleratorInfo": {"Accelerators": [{"Manufacturer": "AWS", "Count": 1}]},
        }
        assert parse_instance_type(raw, []).resources[ResourceName.AWS_NEURON] == Decimal(1)

    def test_unknown_gpu_vendor_is_ignored(self):
        raw = {**M5_LARGE, "GpuInfo": {"Gpus": [{"Manufacturer": "Xilinx", "Count": 1}]}}
        assert not parse_instance_type(raw, []).has_accelerator
