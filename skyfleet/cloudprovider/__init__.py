from skyfleet.cloudprovider.types import Constraints, InstanceType, Offering, filter_instance_types

__all__ = ["Constraints", "InstanceType", "Offering", "filter_instance_types"]
