"""Dependency injection wiring for the AWS provisioner."""

from __future__ import annotations

import aioboto3
from injector import Module, provider, singleton

from skyfleet.config import Options
from skyfleet.infra.throttle import RateLimiter
from skyfleet.providers.aws.clients import EC2ClientFactory
from skyfleet.providers.aws.instance import InstanceProvider
from skyfleet.providers.aws.launch_templates import LabelLaunchTemplateProvider
from skyfleet.providers.aws.subnets import EC2SubnetProvider
from skyfleet.providers.aws.unavailable import UnavailableOfferings


class AWSModule(Module):
    """DI module that provides the EC2 client factory and the provisioner.

    Usage:
        >>> from injector import Injector
        >>> from skyfleet.config import Options
        >>> from skyfleet.providers.aws import AWSModule, InstanceProvider
        >>>
        >>> injector = Injector([AWSModule()])
        >>> injector.binder.bind(Options, to=Options(cluster_name="prod"))
        >>> instances = injector.get(InstanceProvider)
    """

    @singleton
    @provider
    def provide_session(self) -> aioboto3.Session:
        """Provide singleton aioboto3 session."""
        return aioboto3.Session()

    @singleton
    @provider
    def provide_limiter(self, options: Options) -> RateLimiter:
        """Provide the limiter shared by every EC2 client."""
        return RateLimiter(qps=options.creation_qps, burst=options.creation_burst)

    @singleton
    @provider
    def provide_ec2(
        self, session: aioboto3.Session, options: Options, limiter: RateLimiter,
    ) -> EC2ClientFactory:
        """Provide EC2 client factory."""
        return EC2ClientFactory.from_session(session, options.region, limiter)

    @singleton
    @provider
    def provide_unavailable_offerings(self, options: Options) -> UnavailableOfferings:
        return UnavailableOfferings(ttl=options.unavailable_offerings_ttl)

    @singleton
    @provider
    def provide_instance_provider(
        self,
        ec2: EC2ClientFactory,
        unavailable: UnavailableOfferings,
        options: Options,
    ) -> InstanceProvider:
        return InstanceProvider(
            ec2=ec2,
            subnets=EC2SubnetProvider(ec2),
            launch_templates=LabelLaunchTemplateProvider(options.launch_template_prefix),
            unavailable=unavailable,
            options=options,
        )
