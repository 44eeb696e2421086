"""Cloud-agnostic types shared by the scheduler and the provisioner."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from skyfleet.constants import (
    ACCELERATOR_RESOURCES,
    OPERATING_SYSTEM_LINUX,
    CapacityType,
    Label,
)
from skyfleet.scheduling import resources
from skyfleet.scheduling.requirements import Requirements
from skyfleet.scheduling.resources import Resources


def _frozen(mapping: Mapping[str, Decimal] | None = None) -> Mapping[str, Decimal]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True, slots=True)
class Offering:
    """Capacity of an instance type purchasable in a zone."""

    zone: str
    capacity_type: CapacityType | str


@dataclass(frozen=True, slots=True)
class InstanceType:
    """Immutable description of a purchasable machine shape.

    ``resources`` is the allocatable capacity; ``overhead`` is what the node
    itself reserves (kubelet, system daemons) before pods can use it.
    """

    name: str
    resources: Mapping[str, Decimal] = field(default_factory=_frozen, hash=False)
    offerings: tuple[Offering, ...] = ()
    architecture: str = "amd64"
    operating_systems: frozenset[str] = frozenset({OPERATING_SYSTEM_LINUX})
    overhead: Mapping[str, Decimal] = field(default_factory=_frozen, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "resources", _frozen(self.resources))
        object.__setattr__(self, "overhead", _frozen(self.overhead))
        object.__setattr__(self, "offerings", tuple(self.offerings))

    @property
    def has_accelerator(self) -> bool:
        return any(not resources.is_zero(self.resources.get(name)) for name in ACCELERATOR_RESOURCES)

    def has_offering(self, requirements: Requirements) -> bool:
        return any(
            requirements.has(Label.ZONE, o.zone)
            and requirements.has(Label.CAPACITY_TYPE, o.capacity_type)
            for o in self.offerings
        )


@dataclass(frozen=True, slots=True)
class Constraints:
    """What a provisioned node must satisfy.

    Args:
        requirements: Narrowed label requirements.
        labels: Labels applied to the node.
        tags: Tags applied to the launched instance and its volumes.
        subnet_selector: Tag filters selecting eligible subnets ("*" matches any value).
        launch_template: Launch template used for every instance type, if set.
    """

    requirements: Requirements = field(default_factory=Requirements)
    labels: Mapping[str, str] = field(default_factory=dict)
    tags: Mapping[str, str] = field(default_factory=dict)
    subnet_selector: Mapping[str, str] = field(default_factory=dict)
    launch_template: str | None = None

    def with_requirements(self, requirements: Requirements) -> Constraints:
        return Constraints(
            requirements=requirements,
            labels=dict(self.labels),
            tags=dict(self.tags),
            subnet_selector=dict(self.subnet_selector),
            launch_template=self.launch_template,
        )

    def copy(self) -> Constraints:
        return self.with_requirements(self.requirements)


def filter_instance_types(
    instance_types: Sequence[InstanceType],
    requirements: Requirements,
    requests: Resources,
) -> list[InstanceType]:
    """Instance types able to host ``requests`` under ``requirements``.

    Preserves the input order.
    """
    return [
        it
        for it in instance_types
        if requirements.has(Label.INSTANCE_TYPE, it.name)
        and requirements.has(Label.ARCH, it.architecture)
        and any(requirements.has(Label.OS, os) for os in it.operating_systems)
        and resources.fits(resources.merge(requests, it.overhead), it.resources)
        and it.has_offering(requirements)
    ]
