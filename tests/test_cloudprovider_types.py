from __future__ import annotations

from decimal import Decimal

import pytest

from skyfleet.cloudprovider.types import Constraints, InstanceType, Offering, filter_instance_types
from skyfleet.constants import Label
from skyfleet.scheduling.requirements import Operator, Requirement, Requirements
from tests.fakes import instance_type

pytestmark = [pytest.mark.xdist_group("unit")]


def requirements(**by_label: list[str]) -> Requirements:
    return Requirements(Requirement.create(Label[name], Operator.IN, values) for name, values in by_label.items())


class TestInstanceType:
    def test_mappings_are_read_only(self):
        it = instance_type("m5.large")
        with pytest.raises(TypeError):
            it.resources["cpu"] = Decimal(100)

    def test_has_offering(self):
        it = instance_type("m5.large", ("us-east-1a", "spot"))
        assert it.has_offering(Requirements())
        assert it.has_offering(requirements(ZONE=["us-east-1a"], CAPACITY_TYPE=["spot"]))
        assert not it.has_offering(requirements(CAPACITY_TYPE=["on-demand"]))

    def test_offering_needs_zone_and_capacity_together(self):
        it = instance_type("m5.large", ("us-east-1a", "spot"), ("us-east-1b", "on-demand"))
        assert not it.has_offering(requirements(ZONE=["us-east-1a"], CAPACITY_TYPE=["on-demand"]))

    def test_hashable(self):
        assert len({instance_type("m5.large"), instance_type("m5.large")}) == 1


class TestFilterInstanceTypes:
    @pytest.fixture
    def catalog(self):
        return [
            instance_type("m5.large", ("us-east-1a", "spot"), cpu=2),
            instance_type("m6g.large", ("us-east-1a", "spot"), cpu=2, architecture="arm64"),
            instance_type("m5.xlarge", ("us-east-1b", "on-demand"), cpu=4),
        ]

    def names(self, types):
        return [it.name for it in types]

    def test_by_resources(self, catalog):
        result = filter_instance_types(catalog, Requirements(), {"cpu": Decimal(3)})
        assert self.names(result) == ["m5.xlarge"]

    def test_by_instance_type_label(self, catalog):
        result = filter_instance_types(catalog, requirements(INSTANCE_TYPE=["m5.xlarge", "m6g.large"]), {})
        assert self.names(result) == ["m6g.large", "m5.xlarge"]

    def test_by_architecture(self, catalog):
        result = filter_instance_types(catalog, requirements(ARCH=["arm64"]), {})
        assert self.names(result) == ["m6g.large"]

    def test_by_operating_system(self, catalog):
        assert filter_instance_types(catalog, requirements(OS=["windows"]), {}) == []

    def test_by_offering(self, catalog):
        result = filter_instance_types(catalog, requirements(ZONE=["us-east-1b"]), {})
        assert self.names(result) == ["m5.xlarge"]

    def test_overhead_counts_against_capacity(self):
        it = InstanceType(
            name="m5.large",
            resources={"cpu": Decimal(2)},
            offerings=(Offering("us-east-1a", "spot"),),
            overhead={"cpu": Decimal("0.5")},
        )
        assert filter_instance_types([it], Requirements(), {"cpu": Decimal("1.5")}) == [it]
        assert filter_instance_types([it], Requirements(), {"cpu": Decimal("1.6")}) == []


class TestConstraints:
    def test_with_requirements_copies_everything_else(self):
        base = Constraints(labels={"a": "b"}, tags={"t": "v"}, subnet_selector={"s": "*"}, launch_template="lt")
        narrowed = base.with_requirements(requirements(ZONE=["us-east-1a"]))
        assert narrowed.labels == base.labels
        assert narrowed.labels is not base.labels
        assert narrowed.launch_template == "lt"
        assert not narrowed.requirements.has(Label.ZONE, "us-east-1b")
        assert len(base.requirements) == 0
