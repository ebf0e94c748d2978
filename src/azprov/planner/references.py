"""Reference expressions inside descriptor configuration.

A reference has the form ``${<type>.<name>.<attribute>}``, for example
``${azurerm_subnet.ase.id}``. The ``<type>.<name>`` part is the address of
another descriptor; the attribute is looked up in that resource's outputs
once it has been provisioned. The attribute part may be omitted
(``${azurerm_resource_group.main}``), in which case the resource id is used.
"""

import re
from collections.abc import Callable, Iterator
from typing import Any

REFERENCE_PATTERN = re.compile(
    r"\$\{(?P<type>[A-Za-z0-9_\-]+)\.(?P<name>[A-Za-z0-9_\-]+)(?:\.(?P<attr>[A-Za-z0-9_\-\.]+))?\}"
)

DEFAULT_ATTRIBUTE = "id"


def iter_references(value: Any) -> Iterator[tuple[str, str]]:
    """Yield (address, attribute) for every reference found in a config value.

    Walks nested dicts and lists in order. Keys are not scanned.
    """
    if isinstance(value, str):
        for match in REFERENCE_PATTERN.finditer(value):
            address = f"{match.group('type')}.{match.group('name')}"
            yield address, match.group("attr") or DEFAULT_ATTRIBUTE
    elif isinstance(value, dict):
        for item in value.values():
            yield from iter_references(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_references(item)


def referenced_addresses(value: Any) -> list[str]:
    """Return referenced addresses in first-occurrence order, without duplicates."""
    seen: dict[str, None] = {}
    for address, _ in iter_references(value):
        seen.setdefault(address, None)
    return list(seen)


def interpolate(value: Any, lookup: Callable[[str, str], Any]) -> Any:
    """Replace references in a config value using ``lookup(address, attribute)``.

    A string that consists of exactly one reference is replaced by the raw
    looked-up value (which keeps lists and numbers intact). References
    embedded in longer strings are substituted as text.
    """
    if isinstance(value, str):
        match = REFERENCE_PATTERN.fullmatch(value)
        if match:
            return lookup(
                f"{match.group('type')}.{match.group('name')}",
                match.group("attr") or DEFAULT_ATTRIBUTE,
            )

        def _substitute(m: re.Match[str]) -> str:
            resolved = lookup(
                f"{m.group('type')}.{m.group('name')}", m.group("attr") or DEFAULT_ATTRIBUTE
            )
            return str(resolved)

        return REFERENCE_PATTERN.sub(_substitute, value)
    if isinstance(value, dict):
        return {key: interpolate(item, lookup) for key, item in value.items()}
    if isinstance(value, list):
        return [interpolate(item, lookup) for item in value]
    if isinstance(value, tuple):
        return tuple(interpolate(item, lookup) for item in value)
    return value


def lookup_attribute(outputs: dict[str, Any], attribute: str) -> Any:
    """Resolve a dotted attribute path against a resource's outputs.

    Raises:
        KeyError: If the attribute is not present
    """
    current: Any = outputs
    for part in attribute.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            raise KeyError(attribute)
    return current
