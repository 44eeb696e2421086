"""Provisional node used while bin packing pods."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from kubernetes.client import V1Pod
from loguru import logger

from skyfleet.cloudprovider.types import Constraints, InstanceType, filter_instance_types
from skyfleet.core.exceptions import IncompatibleConstraintsError, NoInstanceTypeSatisfiesDemandError
from skyfleet.scheduling import resources
from skyfleet.scheduling.pods import requests_for_pod, requirements_for_pod
from skyfleet.scheduling.resources import Resources

log = logger.bind(component="scheduling")

_MAX_RENDERED_TYPES = 5


class ProvisionalNode:
    """A set of constraints, compatible pods, and instance types that could host them.

    The node narrows as pods are admitted and is later turned into exactly one
    instance. Not safe for concurrent use.

    Example:
        >>> node = ProvisionalNode(constraints, daemon_resources, instance_types)
        >>> node.add(pod)
        >>> node.instance_type_options  # only types that still fit
    """

    def __init__(
        self,
        constraints: Constraints,
        daemon_resources: Resources,
        instance_types: Sequence[InstanceType],
    ) -> None:
        self.constraints = constraints.copy()
        self.instance_type_options: list[InstanceType] = list(instance_types)
        self.pods: list[V1Pod] = []
        self._requests: dict[str, Decimal] = dict(daemon_resources)

    @property
    def requests(self) -> dict[str, Decimal]:
        return dict(self._requests)

    def add(self, pod: V1Pod) -> None:
        """Admit ``pod``, or raise and leave the node untouched."""
        pod_requirements = requirements_for_pod(pod)

        # TODO: check the first pod too once hostname topology spread is supported
        if self.pods:
            conflicts = self.constraints.requirements.conflicts(pod_requirements)
            if conflicts:
                raise IncompatibleConstraintsError(conflicts)

        requirements = self.constraints.requirements.add(pod_requirements)
        pod_requests = requests_for_pod(pod)
        requests = resources.merge(self._requests, pod_requests)
        instance_types = filter_instance_types(self.instance_type_options, requirements, requests)
        if not instance_types:
            raise NoInstanceTypeSatisfiesDemandError(
                resources.to_string(pod_requests), str(self.constraints.requirements)
            )

        self.pods.append(pod)
        self.instance_type_options = instance_types
        self._requests = requests
        self.constraints = self.constraints.with_requirements(requirements)
        log.trace(
            "Admitted pod {pod}, {n} instance type(s) remain",
            pod=pod.metadata.name if pod.metadata else "",
            n=len(instance_types),
        )

    def __str__(self) -> str:
        names = [it.name for it in self.instance_type_options[:_MAX_RENDERED_TYPES]]
        rendered = ", ".join(names)
        remaining = len(self.instance_type_options) - len(names)
        if remaining > 0:
            rendered += f" and {remaining} other(s)"
        return (
            f"node with {len(self.pods)} pods requesting {resources.to_string(self._requests)} "
            f"from types {rendered}"
        )
