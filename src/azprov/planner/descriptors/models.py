"""Data models for declared resources."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from azprov.planner.errors import DuplicateDescriptorError
from azprov.planner.references import referenced_addresses


def make_address(resource_type: str, name: str) -> str:
    """Build the symbolic address ``type.name`` of a resource."""
    return f"{resource_type}.{name}"


@dataclass(frozen=True)
class ResourceDescriptor:
    """A declared resource: type, symbolic name, config and dependencies.

    Descriptors are immutable for the duration of a planning pass. The
    ``config`` mapping is opaque to the planner apart from reference
    expressions, which become dependency edges.
    """

    type: str
    name: str
    config: dict[str, Any] = field(default_factory=dict, compare=True, hash=False)
    depends_on: tuple[str, ...] = ()
    replace_on: tuple[str, ...] = ()

    @property
    def address(self) -> str:
        """Symbolic address (``type.name``)."""
        return make_address(self.type, self.name)

    @property
    def references(self) -> tuple[str, ...]:
        """Ordered, de-duplicated addresses this descriptor depends on.

        Explicit ``depends_on`` entries come first, followed by references
        found in ``config`` in the order they appear.
        """
        ordered: dict[str, None] = dict.fromkeys(self.depends_on)
        for address in referenced_addresses(self.config):
            ordered.setdefault(address, None)
        return tuple(ordered)


class DescriptorStore:
    """Holds the declared descriptors of a stack, keyed by address.

    Preserves declaration order, which keeps graph traversal and
    diagnostics deterministic.
    """

    def __init__(self, descriptors: list[ResourceDescriptor] | None = None):
        self._descriptors: dict[str, ResourceDescriptor] = {}
        for descriptor in descriptors or []:
            self.add(descriptor)

    def add(self, descriptor: ResourceDescriptor) -> None:
        """Add a descriptor.

        Raises:
            DuplicateDescriptorError: If the address is already declared
        """
        if descriptor.address in self._descriptors:
            raise DuplicateDescriptorError(descriptor.address)
        self._descriptors[descriptor.address] = descriptor

    def get(self, address: str) -> ResourceDescriptor | None:
        return self._descriptors.get(address)

    def __getitem__(self, address: str) -> ResourceDescriptor:
        return self._descriptors[address]

    def addresses(self) -> list[str]:
        return list(self._descriptors)

    def types(self) -> set[str]:
        return {d.type for d in self._descriptors.values()}

    def __contains__(self, address: object) -> bool:
        return address in self._descriptors

    def __iter__(self) -> Iterator[ResourceDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)


@dataclass
class StackDefinition:
    """A parsed stack file: descriptors plus named output expressions."""

    descriptors: DescriptorStore
    outputs: dict[str, str] = field(default_factory=dict)
    source: str | None = None
