"""Resource quantity maps used during bin packing.

Quantities are ``Decimal`` values parsed from Kubernetes quantity strings
("500m", "4Gi", 2) so that cpu millicores and memory bytes add up exactly.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal

from kubernetes.utils import parse_quantity

type Resources = Mapping[str, Decimal]
type Quantity = str | int | float | Decimal


def parse(raw: Mapping[str, Quantity] | None) -> dict[str, Decimal]:
    """Parse a Kubernetes resource list into Decimal quantities."""
    if not raw:
        return {}
    return {name: Decimal(parse_quantity(value)) for name, value in raw.items()}


def merge(*resources: Resources) -> dict[str, Decimal]:
    """Element-wise sum of resource maps."""
    result: dict[str, Decimal] = {}
    for resource in resources:
        for name, quantity in resource.items():
            result[name] = result.get(name, Decimal(0)) + quantity
    return result


def max_resources(*resources: Resources) -> dict[str, Decimal]:
    """Element-wise maximum of resource maps."""
    result: dict[str, Decimal] = {}
    for resource in resources:
        for name, quantity in resource.items():
            if quantity > result.get(name, Decimal(0)):
                result[name] = quantity
    return result


def is_zero(quantity: Decimal | None) -> bool:
    return quantity is None or quantity == 0


def fits(requests: Resources, available: Resources) -> bool:
    """True if every requested quantity is available."""
    return all(
        quantity <= available.get(name, Decimal(0))
        for name, quantity in requests.items()
    )


def non_zero(resources: Resources, names: Iterable[str]) -> dict[str, Decimal]:
    """Restrict to ``names``, dropping resources that are zero or absent."""
    return {
        name: resources[name]
        for name in names
        if not is_zero(resources.get(name))
    }


def format_quantity(quantity: Decimal) -> str:
    """Render a quantity in Kubernetes notation ("4", "500m")."""
    if quantity == quantity.to_integral_value():
        return str(int(quantity))
    millis = quantity * 1000
    if millis == millis.to_integral_value():
        return f"{int(millis)}m"
    return str(quantity.normalize())


def to_string(resources: Resources) -> str:
    """Stable, human-readable rendering for logs and error messages."""
    if not resources:
        return "{}"
    parts = [f'"{name}":"{format_quantity(resources[name])}"' for name in sorted(resources)]
    return "{" + ",".join(parts) + "}"
