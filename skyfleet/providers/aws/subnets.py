"""Subnet discovery for fleet overrides."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

from botocore.exceptions import ClientError
from loguru import logger

from skyfleet.cloudprovider.types import Constraints
from skyfleet.core.exceptions import ProvisioningError
from skyfleet.providers.aws.clients import EC2ClientFactory

log = logger.bind(component="aws-subnets")


@dataclass(frozen=True, slots=True)
class Subnet:
    id: str
    zone: str
    available_ips: int = 0


class SubnetProvider(Protocol):
    async def get(self, constraints: Constraints) -> Sequence[Subnet]: ...


def _selector_filters(selector: Mapping[str, str]) -> list[dict[str, object]]:
    filters: list[dict[str, object]] = []
    for key, value in sorted(selector.items()):
        if value == "*":
            filters.append({"Name": "tag-key", "Values": [key]})
        else:
            filters.append({"Name": f"tag:{key}", "Values": [value]})
    return filters


def zonal_subnets(subnets: Iterable[Subnet], zones: Iterable[str] | None = None) -> dict[str, Subnet]:
    """Pick one subnet per zone, the one with the most available IPs.

    With ``zones`` given, subnets outside them are ignored.
    """
    allowed = set(zones) if zones is not None else None
    result: dict[str, Subnet] = {}
    for subnet in sorted(subnets, key=lambda s: s.available_ips):
        if allowed is None or subnet.zone in allowed:
            result[subnet.zone] = subnet
    return result


class EC2SubnetProvider:
    """Resolves subnets matching a constraint's tag selector."""

    def __init__(self, ec2: EC2ClientFactory) -> None:
        self._ec2 = ec2

    async def get(self, constraints: Constraints) -> list[Subnet]:
        filters = _selector_filters(constraints.subnet_selector)
        async with self._ec2() as ec2:
            try:
                response = await ec2.describe_subnets(Filters=filters)
            except ClientError as e:
                raise ProvisioningError(f"describing subnets, {e}") from e

        subnets = [
            Subnet(
                id=raw["SubnetId"],
                zone=raw["AvailabilityZone"],
                available_ips=raw.get("AvailableIpAddressCount", 0),
            )
            for raw in response.get("Subnets", [])
        ]
        if not subnets:
            raise ProvisioningError(f"no subnets matched selector {dict(constraints.subnet_selector)}")
        log.debug("Discovered {n} subnet(s)", n=len(subnets))
        return subnets
