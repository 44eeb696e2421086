"""Node requirement sets and their narrowing algebra.

A requirement restricts the value a node label may take. Each one is
modelled as a set over "label value or label absent":

- ``In``:           exactly the listed values
- ``NotIn``:        anything but the listed values, absence allowed
- ``Exists``:       any value, absence not allowed
- ``DoesNotExist``: absence only

Intersecting two requirements on the same key can only shrink the set, so
merged requirement sets never widen.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum

from skyfleet.core.exceptions import UnsupportedOperatorError


class Operator(StrEnum):
    IN = "In"
    NOT_IN = "NotIn"
    EXISTS = "Exists"
    DOES_NOT_EXIST = "DoesNotExist"


@dataclass(frozen=True, slots=True)
class Requirement:
    """Allowed values for a single label key.

    When ``complement`` is set, ``values`` lists the *excluded* values and
    every other value is allowed.
    """

    key: str
    values: frozenset[str] = frozenset()
    complement: bool = False
    allows_absent: bool = False

    @classmethod
    def create(cls, key: str, operator: Operator | str, values: Iterable[str] = ()) -> Requirement:
        try:
            operator = Operator(operator)
        except ValueError:
            raise UnsupportedOperatorError(key, str(operator)) from None
        match operator:
            case Operator.IN:
                return cls(key, frozenset(values))
            case Operator.NOT_IN:
                return cls(key, frozenset(values), complement=True, allows_absent=True)
            case Operator.EXISTS:
                return cls(key, complement=True)
            case Operator.DOES_NOT_EXIST:
                return cls(key, allows_absent=True)

    def has(self, value: str) -> bool:
        if self.complement:
            return value not in self.values
        return value in self.values

    def intersect(self, other: Requirement) -> Requirement:
        match (self.complement, other.complement):
            case (False, False):
                values, complement = self.values & other.values, False
            case (False, True):
                values, complement = self.values - other.values, False
            case (True, False):
                values, complement = other.values - self.values, False
            case _:
                values, complement = self.values | other.values, True
        return Requirement(
            self.key,
            frozenset(values),
            complement=complement,
            allows_absent=self.allows_absent and other.allows_absent,
        )

    def is_empty(self) -> bool:
        return not self.complement and not self.values and not self.allows_absent

    def __str__(self) -> str:
        if self.complement:
            if not self.values:
                return f"{self.key} Exists"
            return f"{self.key} NotIn [{', '.join(sorted(self.values))}]"
        if not self.values and self.allows_absent:
            return f"{self.key} DoesNotExist"
        return f"{self.key} In [{', '.join(sorted(self.values))}]"


class Requirements(Mapping[str, Requirement]):
    """Immutable set of requirements keyed by label.

    Keys that are absent are unconstrained.
    """

    __slots__ = ("_requirements",)

    def __init__(self, requirements: Iterable[Requirement] = ()) -> None:
        merged: dict[str, Requirement] = {}
        for requirement in requirements:
            existing = merged.get(requirement.key)
            merged[requirement.key] = existing.intersect(requirement) if existing else requirement
        self._requirements = merged

    @classmethod
    def from_labels(cls, labels: Mapping[str, str] | None) -> Requirements:
        return cls(Requirement.create(k, Operator.IN, [v]) for k, v in (labels or {}).items())

    def __getitem__(self, key: str) -> Requirement:
        return self._requirements[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._requirements)

    def __len__(self) -> int:
        return len(self._requirements)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Requirements):
            return NotImplemented
        return self._requirements == other._requirements

    def __hash__(self) -> int:
        return hash(frozenset(self._requirements.items()))

    def add(self, *others: Requirements | Requirement) -> Requirements:
        """Narrowing merge; returns a new set."""
        flattened: list[Requirement] = list(self._requirements.values())
        for other in others:
            match other:
                case Requirement():
                    flattened.append(other)
                case _:
                    flattened.extend(other.values())
        return Requirements(flattened)

    def has(self, key: str, value: str) -> bool:
        """True if ``value`` is allowed for ``key``."""
        requirement = self._requirements.get(key)
        return requirement is None or requirement.has(value)

    def conflicts(self, other: Requirements) -> list[str]:
        """Keys whose combined requirement admits nothing."""
        return sorted(
            key
            for key in self._requirements.keys() & other._requirements.keys()
            if self._requirements[key].intersect(other._requirements[key]).is_empty()
        )

    def compatible(self, other: Requirements) -> bool:
        return not self.conflicts(other)

    def __str__(self) -> str:
        return ", ".join(str(self._requirements[k]) for k in sorted(self._requirements))

    def __repr__(self) -> str:
        return f"Requirements({self})"
