"""Scheduling demand derived from a pod spec."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from kubernetes.client import V1Container, V1Pod

from skyfleet.constants import ResourceName
from skyfleet.scheduling import resources
from skyfleet.scheduling.requirements import Requirement, Requirements


def requirements_for_pod(pod: V1Pod) -> Requirements:
    """Node selector plus the first required node-affinity term.

    Only the first ``nodeSelectorTerms`` entry is honoured; terms are ORed by
    Kubernetes and a single provisional node can only commit to one of them.
    """
    spec = pod.spec
    requirements = Requirements.from_labels(spec.node_selector if spec else None)

    affinity = spec.affinity if spec else None
    node_affinity = affinity.node_affinity if affinity else None
    required = node_affinity.required_during_scheduling_ignored_during_execution if node_affinity else None
    if required and required.node_selector_terms:
        term = required.node_selector_terms[0]
        requirements = requirements.add(
            *(
                Requirement.create(expr.key, expr.operator, expr.values or ())
                for expr in term.match_expressions or ()
            )
        )
    return requirements


def _container_requests(containers: Iterable[V1Container] | None) -> list[dict[str, Decimal]]:
    return [
        resources.parse(c.resources.requests if c.resources else None)
        for c in containers or ()
    ]


def requests_for_pod(pod: V1Pod) -> dict[str, Decimal]:
    """Effective resource requests of a pod, including its pod slot.

    App containers run together and are summed; init containers run one at a
    time, so the pod needs the larger of the sum and any single init container.
    """
    spec = pod.spec
    if spec is None:
        return {ResourceName.PODS: Decimal(1)}
    requests = resources.max_resources(
        resources.merge(*_container_requests(spec.containers)),
        *_container_requests(spec.init_containers),
    )
    return resources.merge(
        requests,
        resources.parse(spec.overhead),
        {ResourceName.PODS: Decimal(1)},
    )


def requests_for_pods(*pods: V1Pod) -> dict[str, Decimal]:
    return resources.merge(*(requests_for_pod(pod) for pod in pods))
