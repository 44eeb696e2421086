from __future__ import annotations

import pytest

from skyfleet.cloudprovider.types import Constraints
from skyfleet.providers.aws.launch_templates import LabelLaunchTemplateProvider
from tests.fakes import instance_type

pytestmark = [pytest.mark.xdist_group("unit")]


class TestLabelLaunchTemplateProvider:
    @pytest.mark.asyncio
    async def test_groups_by_architecture_and_accelerator(self):
        amd = instance_type("m5.large")
        arm = instance_type("m6g.large", architecture="arm64")
        gpu = instance_type("p3.2xlarge", gpus=1)
        provider = LabelLaunchTemplateProvider("fleet")

        groups = await provider.get(Constraints(), [amd, arm, gpu], {})

        assert groups == {
            "fleet-amd64": [amd],
            "fleet-arm64": [arm],
            "fleet-amd64-accelerated": [gpu],
        }

    @pytest.mark.asyncio
    async def test_group_preserves_order(self):
        types = [instance_type(f"m5.{n}") for n in ("large", "xlarge", "2xlarge")]
        groups = await LabelLaunchTemplateProvider().get(Constraints(), types, {})
        assert groups == {"skyfleet-amd64": types}

    @pytest.mark.asyncio
    async def test_explicit_template_takes_every_type(self):
        types = [instance_type("m5.large"), instance_type("m6g.large", architecture="arm64")]
        groups = await LabelLaunchTemplateProvider().get(Constraints(launch_template="mine"), types, {})
        assert groups == {"mine": types}
