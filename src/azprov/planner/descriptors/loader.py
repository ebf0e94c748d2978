"""Stack file loading.

A stack file is YAML::

    resources:
      - type: azurerm_resource_group
        name: main
        config:
          name: rg-logicapp-tf
          location: westeurope
      - type: azurerm_virtual_network
        name: main
        config:
          name: vnet-logicapp
          resource_group_name: ${azurerm_resource_group.main.name}
          address_space: ["10.0.0.0/16"]
    outputs:
      logic_app_name: ${azurerm_logic_app_standard.main.name}

Security:
    Uses yaml.safe_load() to prevent arbitrary code execution
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from azprov.planner.descriptors.models import (
    DescriptorStore,
    ResourceDescriptor,
    StackDefinition,
    make_address,
)
from azprov.planner.errors import StackFileError
from azprov.planner.references import REFERENCE_PATTERN

logger = logging.getLogger(__name__)

ALLOWED_RESOURCE_KEYS = {"type", "name", "config", "depends_on", "replace_on"}


def load_stack(stack_file: Path) -> StackDefinition:
    """Load a stack definition from a YAML file.

    Args:
        stack_file: Path to the stack YAML file

    Returns:
        Parsed StackDefinition

    Raises:
        StackFileError: If the file is missing or invalid
        DuplicateDescriptorError: If two resources share an address
    """
    if not stack_file.exists():
        raise StackFileError(f"Stack file not found: {stack_file}")

    try:
        with stack_file.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise StackFileError(f"Failed to parse YAML in {stack_file}: {e}") from e

    stack = parse_stack(data)
    stack.source = str(stack_file)
    logger.debug(f"Loaded {len(stack.descriptors)} resources from {stack_file}")
    return stack


def parse_stack(data: Any) -> StackDefinition:
    """Build a StackDefinition from already-parsed YAML data."""
    if not isinstance(data, dict) or "resources" not in data:
        raise StackFileError("Stack must contain a 'resources' key")

    resources = data["resources"] or []
    if not isinstance(resources, list):
        raise StackFileError("'resources' must be a list")

    store = DescriptorStore()
    for index, entry in enumerate(resources):
        store.add(_parse_resource(entry, index))

    outputs = data.get("outputs") or {}
    if not isinstance(outputs, dict):
        raise StackFileError("'outputs' must be a mapping of name to expression")
    for output_name, expression in outputs.items():
        if not isinstance(expression, str) or not REFERENCE_PATTERN.search(expression):
            raise StackFileError(
                f"Output '{output_name}' must be a reference expression like "
                "${type.name.attribute}"
            )

    return StackDefinition(descriptors=store, outputs=dict(outputs))


def _parse_resource(entry: Any, index: int) -> ResourceDescriptor:
    if not isinstance(entry, dict):
        raise StackFileError(f"Resource #{index} must be a mapping")

    if "type" not in entry or "name" not in entry:
        raise StackFileError(f"Resource #{index} must have 'type' and 'name'")

    unknown = set(entry) - ALLOWED_RESOURCE_KEYS
    if unknown:
        raise StackFileError(
            f"Resource #{index} ({entry['type']}.{entry['name']}) has unknown keys: "
            f"{', '.join(sorted(unknown))}"
        )

    config = entry.get("config") or {}
    if not isinstance(config, dict):
        raise StackFileError(f"Resource {entry['type']}.{entry['name']}: 'config' must be a mapping")

    depends_on = entry.get("depends_on") or []
    replace_on = entry.get("replace_on") or []
    for label, values in (("depends_on", depends_on), ("replace_on", replace_on)):
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise StackFileError(
                f"Resource {entry['type']}.{entry['name']}: '{label}' must be a list of strings"
            )

    return ResourceDescriptor(
        type=str(entry["type"]),
        name=str(entry["name"]),
        config=config,
        depends_on=tuple(_normalize_dependency(d) for d in depends_on),
        replace_on=tuple(replace_on),
    )


def _normalize_dependency(value: str) -> str:
    """Accept both ``type.name`` and ``${type.name}`` in depends_on."""
    match = REFERENCE_PATTERN.fullmatch(value)
    if match:
        return make_address(match.group("type"), match.group("name"))
    return value
