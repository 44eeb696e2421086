"""EC2 instance provisioning through instant fleets.

InstanceProvider turns the narrowed instance type list of a provisional node
into exactly one EC2 instance and a matching Kubernetes node, and
terminates instances by node.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from botocore.exceptions import ClientError
from kubernetes.client import (
    V1Node,
    V1NodeSpec,
    V1NodeStatus,
    V1NodeSystemInfo,
    V1ObjectMeta,
)
from loguru import logger

from skyfleet.cloudprovider.types import Constraints, InstanceType
from skyfleet.config import Options
from skyfleet.constants import (
    AWS_TO_KUBE_ARCHITECTURES,
    INSTANCE_NOT_FOUND_ERROR_CODE,
    INSUFFICIENT_CAPACITY_ERROR_CODE,
    NODE_RESOURCES,
    OPERATING_SYSTEM_LINUX,
    PROVIDER_ID_SCHEME,
    CapacityType,
    Label,
    NodeNameConvention,
)
from skyfleet.core.exceptions import (
    FleetRequestError,
    InstanceLookupError,
    InstanceLookupInconsistentError,
    MalformedProviderIDError,
    NoOfferingsAvailableError,
    ProvisioningError,
    TerminateError,
    UnrecognizedInstanceTypeError,
)
from skyfleet.providers.aws.clients import EC2ClientFactory
from skyfleet.providers.aws.launch_templates import LaunchTemplateProvider
from skyfleet.providers.aws.subnets import Subnet, SubnetProvider, zonal_subnets
from skyfleet.providers.aws.unavailable import OfferingsCache
from skyfleet.retry import RetryPolicy
from skyfleet.scheduling import resources

log = logger.bind(component="aws-instances")

SPOT_ALLOCATION_STRATEGY = "capacity-optimized-prioritized"
ON_DEMAND_ALLOCATION_STRATEGY = "lowest-price"


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def is_not_found(error: BaseException) -> bool:
    return isinstance(error, ClientError) and _error_code(error) == INSTANCE_NOT_FOUND_ERROR_CODE


# =============================================================================
# Request construction
# =============================================================================


def filter_accelerated(instance_types: Sequence[InstanceType]) -> list[InstanceType]:
    """Prefer general purpose types when any of them is a candidate.

    If every candidate carries an accelerator the list is returned unaltered.
    """
    generic = [it for it in instance_types if not it.has_accelerator]
    return generic or list(instance_types)


def select_capacity_type(constraints: Constraints, instance_types: Sequence[InstanceType]) -> CapacityType:
    """Spot when the constraints allow it and some type offers spot in an allowed zone."""
    requirements = constraints.requirements
    if requirements.has(Label.CAPACITY_TYPE, CapacityType.SPOT):
        for instance_type in instance_types:
            for offering in instance_type.offerings:
                if offering.capacity_type == CapacityType.SPOT and requirements.has(Label.ZONE, offering.zone):
                    return CapacityType.SPOT
    return CapacityType.ON_DEMAND


def build_overrides(
    instance_types: Sequence[InstanceType],
    subnets: Mapping[str, Subnet],
    constraints: Constraints,
    capacity_type: CapacityType,
    priorities: Mapping[str, int],
) -> list[dict[str, Any]]:
    """Cross product of instance types and zonal subnets for one launch template.

    Spot overrides carry the type's position in the price-ordered candidate
    list as priority, steering capacity-optimized-prioritized toward the
    smaller types.
    """
    overrides: list[dict[str, Any]] = []
    for instance_type in instance_types:
        for offering in instance_type.offerings:
            if offering.capacity_type != capacity_type:
                continue
            if not constraints.requirements.has(Label.ZONE, offering.zone):
                continue
            subnet = subnets.get(offering.zone)
            if subnet is None:
                continue
            override: dict[str, Any] = {
                "InstanceType": instance_type.name,
                "SubnetId": subnet.id,
                # Lets insufficient capacity errors be mapped back to a zone without another lookup
                "AvailabilityZone": subnet.zone,
            }
            if capacity_type == CapacityType.SPOT:
                override["Priority"] = float(priorities[instance_type.name])
            overrides.append(override)
    return overrides


def fleet_errors(response: Mapping[str, Any]) -> list[tuple[str, str, str, str]]:
    """(code, message, instance type, zone) of every per-override error."""
    errors = []
    for error in response.get("Errors", []):
        overrides = error.get("LaunchTemplateAndOverrides", {}).get("Overrides", {})
        errors.append((
            error.get("ErrorCode", ""),
            error.get("ErrorMessage", ""),
            overrides.get("InstanceType", ""),
            overrides.get("AvailabilityZone", ""),
        ))
    return errors


def parse_instance_id(provider_id: str | None) -> str:
    """Instance id from ``aws:///<zone>/<instance-id>``."""
    parts = (provider_id or "").split("/")
    if len(parts) < 5 or not parts[4]:
        raise MalformedProviderIDError(provider_id or "")
    return parts[4]


def capacity_type_of(instance: Mapping[str, Any]) -> CapacityType:
    if instance.get("SpotInstanceRequestId"):
        return CapacityType.SPOT
    return CapacityType.ON_DEMAND


# =============================================================================
# Instance Provider
# =============================================================================


class InstanceProvider:
    """Launches and terminates single EC2 instances for provisional nodes.

    Stateless per call; safe to use concurrently for independent nodes. The
    only shared state is the offerings cache and the rate limiter behind the
    EC2 client factory, both internally synchronized.

    Example:
        >>> provider = InstanceProvider(ec2, subnets, launch_templates, unavailable, options)
        >>> node = await provider.create(constraints, instance_types)
        >>> await provider.terminate(node)
    """

    def __init__(
        self,
        ec2: EC2ClientFactory,
        subnets: SubnetProvider,
        launch_templates: LaunchTemplateProvider,
        unavailable: OfferingsCache,
        options: Options,
        lookup_retry: RetryPolicy | None = None,
    ) -> None:
        self._ec2 = ec2
        self._subnets = subnets
        self._launch_templates = launch_templates
        self._unavailable = unavailable
        self._options = options
        self._lookup_retry = lookup_retry or options.lookup_retry

    async def create(self, constraints: Constraints, instance_types: Sequence[InstanceType]) -> V1Node:
        """Launch one instance satisfying ``constraints``.

        ``instance_types`` must be sorted by price, cheapest first; the order
        sets spot priorities.
        """
        instance_types = filter_accelerated(instance_types)
        candidates = instance_types[: self._options.max_instance_types]

        instance_id = await self._launch(constraints, candidates)
        instance = await self._describe_with_retry(instance_id)
        log.info(
            "Launched instance: {instance_id}, hostname: {hostname}, type: {instance_type}, "
            "zone: {zone}, capacityType: {capacity_type}",
            instance_id=instance_id,
            hostname=instance.get("PrivateDnsName", ""),
            instance_type=instance.get("InstanceType", ""),
            zone=instance.get("Placement", {}).get("AvailabilityZone", ""),
            capacity_type=capacity_type_of(instance),
        )
        return self._to_node(instance, instance_types)

    async def terminate(self, node: V1Node) -> None:
        name = node.metadata.name if node.metadata else ""
        provider_id = node.spec.provider_id if node.spec else None
        instance_id = parse_instance_id(provider_id)

        async with self._ec2() as ec2:
            try:
                await ec2.terminate_instances(InstanceIds=[instance_id])
            except ClientError as e:
                if is_not_found(e):
                    log.debug("Instance {instance_id} already gone", instance_id=instance_id)
                    return
                raise TerminateError(name, str(e)) from e
        log.info("Terminated instance {instance_id} for node {node}", instance_id=instance_id, node=name)

    # -------------------------------------------------------------------------
    # Launch
    # -------------------------------------------------------------------------

    async def _launch(self, constraints: Constraints, instance_types: Sequence[InstanceType]) -> str:
        capacity_type = select_capacity_type(constraints, instance_types)
        launch_template_configs = await self._launch_template_configs(
            constraints, instance_types, capacity_type
        )

        tags = [
            {"Key": k, "Value": v}
            for k, v in {
                **constraints.tags,
                f"kubernetes.io/cluster/{self._options.cluster_name}": "owned",
            }.items()
        ]
        request: dict[str, Any] = {
            "Type": "instant",
            "LaunchTemplateConfigs": launch_template_configs,
            "TargetCapacitySpecification": {
                "DefaultTargetCapacityType": str(capacity_type),
                "TotalTargetCapacity": 1,
            },
            "TagSpecifications": [
                {"ResourceType": "instance", "Tags": tags},
                {"ResourceType": "volume", "Tags": tags},
            ],
        }
        if capacity_type == CapacityType.SPOT:
            request["SpotOptions"] = {"AllocationStrategy": SPOT_ALLOCATION_STRATEGY}
        else:
            request["OnDemandOptions"] = {"AllocationStrategy": ON_DEMAND_ALLOCATION_STRATEGY}

        async with self._ec2() as ec2:
            try:
                response = await ec2.create_fleet(**request)
            except ClientError as e:
                raise ProvisioningError(f"creating fleet, {e}") from e

        errors = fleet_errors(response)
        self._cache_unavailable(errors, capacity_type)

        instance_ids = [
            instance_id
            for instance_set in response.get("Instances", [])
            for instance_id in instance_set.get("InstanceIds", [])
        ]
        if not instance_ids:
            raise FleetRequestError((code, message) for code, message, _, _ in errors)
        return instance_ids[0]

    async def _launch_template_configs(
        self,
        constraints: Constraints,
        instance_types: Sequence[InstanceType],
        capacity_type: CapacityType,
    ) -> list[dict[str, Any]]:
        try:
            subnets = await self._subnets.get(constraints)
            launch_templates = await self._launch_templates.get(
                constraints, instance_types, {Label.CAPACITY_TYPE: str(capacity_type)}
            )
        except ClientError as e:
            raise ProvisioningError(f"getting launch template configs, {e}") from e

        zonal = zonal_subnets(subnets)
        priorities = {it.name: i for i, it in enumerate(instance_types)}
        configs: list[dict[str, Any]] = []
        for template_name, group in launch_templates.items():
            overrides = build_overrides(group, zonal, constraints, capacity_type, priorities)
            if not overrides:
                continue
            configs.append({
                "LaunchTemplateSpecification": {
                    "LaunchTemplateName": template_name,
                    "Version": "$Latest",
                },
                "Overrides": overrides,
            })
        if not configs:
            raise NoOfferingsAvailableError()
        return configs

    def _cache_unavailable(self, errors: Sequence[tuple[str, str, str, str]], capacity_type: CapacityType) -> None:
        for code, _, instance_type, zone in errors:
            if code != INSUFFICIENT_CAPACITY_ERROR_CODE:
                continue
            try:
                self._unavailable.mark_unavailable(instance_type, zone, capacity_type)
            except Exception:
                log.exception(
                    "Failed to cache unavailable offering {instance_type} in {zone}",
                    instance_type=instance_type,
                    zone=zone,
                )

    # -------------------------------------------------------------------------
    # Describe
    # -------------------------------------------------------------------------

    async def _describe_with_retry(self, instance_id: str) -> dict[str, Any]:
        # EC2 is eventually consistent, a fresh instance may not be visible yet
        try:
            return await self._lookup_retry.call(self._describe, instance_id)
        except InstanceLookupError:
            raise
        except Exception as e:
            raise InstanceLookupError(instance_id, f"describing instance, {e}") from e

    async def _describe(self, instance_id: str) -> dict[str, Any]:
        async with self._ec2() as ec2:
            response = await ec2.describe_instances(InstanceIds=[instance_id])

        reservations = response.get("Reservations", [])
        if len(reservations) != 1 or len(reservations[0].get("Instances", [])) != 1:
            raise ProvisioningError(f"expected instance {instance_id} but got 0")
        instance = reservations[0]["Instances"][0]

        if self._options.node_name_convention == NodeNameConvention.RESOURCE_NAME:
            return instance
        if not instance.get("PrivateDnsName"):
            raise InstanceLookupInconsistentError(instance_id)
        return instance

    # -------------------------------------------------------------------------
    # Node
    # -------------------------------------------------------------------------

    def _to_node(self, instance: Mapping[str, Any], instance_types: Sequence[InstanceType]) -> V1Node:
        instance_id = instance["InstanceId"]
        type_name = instance.get("InstanceType", "")
        instance_type = next((it for it in instance_types if it.name == type_name), None)
        if instance_type is None:
            raise UnrecognizedInstanceTypeError(type_name, instance_id, [it.name for it in instance_types])

        if self._options.node_name_convention == NodeNameConvention.RESOURCE_NAME:
            name = instance_id
        else:
            name = instance.get("PrivateDnsName", "").lower()

        zone = instance.get("Placement", {}).get("AvailabilityZone", "")
        quantities = {
            str(k): resources.format_quantity(v)
            for k, v in resources.non_zero(instance_type.resources, NODE_RESOURCES).items()
        }

        return V1Node(
            metadata=V1ObjectMeta(
                name=name,
                labels={
                    Label.ZONE.value: zone,
                    Label.INSTANCE_TYPE.value: type_name,
                    Label.CAPACITY_TYPE.value: capacity_type_of(instance).value,
                },
            ),
            spec=V1NodeSpec(provider_id=f"{PROVIDER_ID_SCHEME}:///{zone}/{instance_id}"),
            status=V1NodeStatus(
                allocatable=quantities,
                capacity=dict(quantities),
                node_info=V1NodeSystemInfo(
                    architecture=AWS_TO_KUBE_ARCHITECTURES.get(instance.get("Architecture", ""), ""),
                    os_image=instance.get("ImageId", ""),
                    operating_system=OPERATING_SYSTEM_LINUX,
                    # required by the client model, filled in by the kubelet on registration
                    boot_id="",
                    container_runtime_version="",
                    kernel_version="",
                    kube_proxy_version="",
                    kubelet_version="",
                    machine_id="",
                    system_uuid="",
                ),
            ),
        )
