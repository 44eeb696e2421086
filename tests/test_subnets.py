from __future__ import annotations

import pytest

from skyfleet.cloudprovider.types import Constraints
from skyfleet.core.exceptions import ProvisioningError
from skyfleet.providers.aws.subnets import EC2SubnetProvider, Subnet, zonal_subnets
from tests.fakes import FakeEC2, client_error, fake_factory

pytestmark = [pytest.mark.xdist_group("unit")]


class TestZonalSubnets:
    def test_one_subnet_per_zone_with_most_ips(self):
        subnets = [
            Subnet("a-big", "us-east-1a", 500),
            Subnet("a-small", "us-east-1a", 5),
            Subnet("b-only", "us-east-1b", 1),
        ]
        result = zonal_subnets(subnets)
        assert {zone: s.id for zone, s in result.items()} == {"us-east-1a": "a-big", "us-east-1b": "b-only"}

    def test_restricted_to_zones(self):
        subnets = [Subnet("a", "us-east-1a", 1), Subnet("b", "us-east-1b", 1)]
        assert list(zonal_subnets(subnets, zones=["us-east-1b"])) == ["us-east-1b"]

    def test_empty(self):
        assert zonal_subnets([]) == {}


class TestEC2SubnetProvider:
    @pytest.mark.asyncio
    async def test_selector_becomes_tag_filters(self):
        ec2 = FakeEC2(subnets=[
            {"SubnetId": "subnet-1", "AvailabilityZone": "us-east-1a", "AvailableIpAddressCount": 42},
        ])
        provider = EC2SubnetProvider(fake_factory(ec2))

        subnets = await provider.get(Constraints(subnet_selector={"kubernetes.io/cluster/test": "*", "tier": "private"}))

        assert subnets == [Subnet("subnet-1", "us-east-1a", 42)]
        assert ec2.calls_to("describe_subnets") == [{
            "Filters": [
                {"Name": "tag-key", "Values": ["kubernetes.io/cluster/test"]},
                {"Name": "tag:tier", "Values": ["private"]},
            ],
        }]

    @pytest.mark.asyncio
    async def test_no_match_raises(self):
        provider = EC2SubnetProvider(fake_factory(FakeEC2(subnets=[])))
        with pytest.raises(ProvisioningError, match="no subnets matched"):
            await provider.get(Constraints(subnet_selector={"tier": "private"}))

    @pytest.mark.asyncio
    async def test_client_error_is_wrapped(self):
        class FailingEC2(FakeEC2):
            async def describe_subnets(self, **kwargs):
                raise client_error("UnauthorizedOperation", "DescribeSubnets")

        provider = EC2SubnetProvider(fake_factory(FailingEC2()))
        with pytest.raises(ProvisioningError, match="describing subnets"):
            await provider.get(Constraints())
