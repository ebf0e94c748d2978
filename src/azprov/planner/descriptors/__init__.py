"""Resource descriptors and stack file loading."""

from azprov.planner.descriptors.loader import load_stack, parse_stack
from azprov.planner.descriptors.models import (
    DescriptorStore,
    ResourceDescriptor,
    StackDefinition,
    make_address,
)

__all__ = [
    "DescriptorStore",
    "ResourceDescriptor",
    "StackDefinition",
    "load_stack",
    "make_address",
    "parse_stack",
]
