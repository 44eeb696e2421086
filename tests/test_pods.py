from __future__ import annotations

from decimal import Decimal

import pytest

from skyfleet.constants import Label
from skyfleet.scheduling.pods import requests_for_pod, requests_for_pods, requirements_for_pod
from tests.fakes import pod

pytestmark = [pytest.mark.xdist_group("unit")]


class TestRequirementsForPod:
    def test_no_constraints(self):
        assert len(requirements_for_pod(pod())) == 0

    def test_node_selector(self):
        reqs = requirements_for_pod(pod(node_selector={Label.ZONE: "us-east-1a"}))
        assert reqs.has(Label.ZONE, "us-east-1a")
        assert not reqs.has(Label.ZONE, "us-east-1b")

    def test_affinity_narrows_node_selector(self):
        reqs = requirements_for_pod(pod(
            node_selector={Label.ARCH: "amd64"},
            match_expressions=[(Label.ZONE, "In", ["us-east-1a", "us-east-1b"])],
        ))
        assert reqs.has(Label.ZONE, "us-east-1b")
        assert not reqs.has(Label.ZONE, "us-east-1c")
        assert not reqs.has(Label.ARCH, "arm64")

    def test_exists_expression_without_values(self):
        reqs = requirements_for_pod(pod(match_expressions=[(Label.CAPACITY_TYPE, "DoesNotExist", [])]))
        assert not reqs.has(Label.CAPACITY_TYPE, "spot")


class TestRequestsForPod:
    def test_containers_are_summed_with_pod_slot(self):
        requests = requests_for_pod(pod(requests={"cpu": "500m", "memory": "1Gi"}))
        assert requests == {"cpu": Decimal("0.5"), "memory": Decimal(1024**3), "pods": Decimal(1)}

    def test_init_container_larger_than_app(self):
        requests = requests_for_pod(pod(requests={"cpu": "1"}, init_requests={"cpu": "2"}))
        assert requests["cpu"] == Decimal(2)

    def test_app_larger_than_init_container(self):
        requests = requests_for_pod(pod(requests={"cpu": "3"}, init_requests={"cpu": "2", "memory": "1Mi"}))
        assert requests["cpu"] == Decimal(3)
        assert requests["memory"] == Decimal(1024**2)

    def test_requests_for_pods(self):
        requests = requests_for_pods(pod(requests={"cpu": "1"}), pod(requests={"cpu": "1"}))
        assert requests == {"cpu": Decimal(2), "pods": Decimal(2)}
