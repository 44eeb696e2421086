"""AWS EC2 provisioner for Skyfleet.

Example:
    from injector import Injector

    from skyfleet.config import Options
    from skyfleet.providers.aws import AWSModule, InstanceProvider

    injector = Injector([AWSModule()])
    injector.binder.bind(Options, to=Options(cluster_name="prod"))
    node = await injector.get(InstanceProvider).create(constraints, instance_types)
"""

from skyfleet.providers.aws.clients import EC2ClientFactory, RateLimitedClient
from skyfleet.providers.aws.instance import InstanceProvider
from skyfleet.providers.aws.instance_types import parse_instance_type
from skyfleet.providers.aws.launch_templates import LabelLaunchTemplateProvider, LaunchTemplateProvider
from skyfleet.providers.aws.module import AWSModule
from skyfleet.providers.aws.subnets import EC2SubnetProvider, Subnet, SubnetProvider
from skyfleet.providers.aws.unavailable import OfferingsCache, UnavailableOfferings

__all__ = [
    "AWSModule",
    "EC2ClientFactory",
    "EC2SubnetProvider",
    "InstanceProvider",
    "LabelLaunchTemplateProvider",
    "LaunchTemplateProvider",
    "OfferingsCache",
    "RateLimitedClient",
    "Subnet",
    "SubnetProvider",
    "UnavailableOfferings",
    "parse_instance_type",
]
