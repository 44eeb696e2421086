"""Launch template grouping for fleet requests.

Instance types that boot from different images (CPU architecture,
accelerator drivers) cannot share a launch template, so the fleet request
carries one launch template config per group.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Protocol

from skyfleet.cloudprovider.types import Constraints, InstanceType


class LaunchTemplateProvider(Protocol):
    async def get(
        self,
        constraints: Constraints,
        instance_types: Sequence[InstanceType],
        labels: Mapping[str, str],
    ) -> Mapping[str, Sequence[InstanceType]]: ...


class LabelLaunchTemplateProvider:
    """Groups instance types by architecture and accelerator presence.

    Templates are expected to exist already, named
    ``<prefix>-<architecture>`` or ``<prefix>-<architecture>-accelerated``.
    A constraint naming an explicit launch template overrides grouping.
    """

    def __init__(self, prefix: str = "skyfleet") -> None:
        self._prefix = prefix

    def template_name(self, instance_type: InstanceType) -> str:
        name = f"{self._prefix}-{instance_type.architecture}"
        if instance_type.has_accelerator:
            name += "-accelerated"
        return name

    async def get(
        self,
        constraints: Constraints,
        instance_types: Sequence[InstanceType],
        labels: Mapping[str, str],
    ) -> dict[str, list[InstanceType]]:
        if constraints.launch_template:
            return {constraints.launch_template: list(instance_types)}

        groups: dict[str, list[InstanceType]] = {}
        for instance_type in instance_types:
            groups.setdefault(self.template_name(instance_type), []).append(instance_type)
        return groups
