"""Error taxonomy for planning, applying and destroying stacks.

Configuration-time errors (ConfigurationError and subclasses) abort a
planning pass before any provider call. Runtime errors are scoped to a
single resource and are collected into reports instead of unwinding the
whole apply.
"""


class PlanError(Exception):
    """Base class for all planner errors."""

    pass


class ConfigurationError(PlanError):
    """Raised when the declared stack is invalid."""

    pass


class StackFileError(ConfigurationError):
    """Raised when a stack file cannot be read or parsed."""

    pass


class DuplicateDescriptorError(ConfigurationError):
    """Raised when two descriptors share the same address."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Duplicate resource declaration: {address}")


class UnresolvedReferenceError(ConfigurationError):
    """Raised when a descriptor references an address that is not declared."""

    def __init__(self, source: str, reference: str):
        self.source = source
        self.reference = reference
        super().__init__(f"{source} references undeclared resource {reference}")


class CyclicDependencyError(ConfigurationError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(f"Dependency cycle detected: {' -> '.join(cycle)}")


class UnsupportedResourceTypeError(ConfigurationError):
    """Raised when the active provider cannot manage a resource type."""

    def __init__(self, address: str, resource_type: str):
        self.address = address
        self.resource_type = resource_type
        super().__init__(f"{address}: resource type '{resource_type}' is not supported")


class StateError(PlanError):
    """Raised when the state file cannot be read or written."""

    pass


class ProvisioningFailure(PlanError):
    """Raised when one or more resources failed to provision."""

    def __init__(self, failures: dict[str, str]):
        self.failures = failures
        details = "; ".join(f"{addr}: {reason}" for addr, reason in failures.items())
        super().__init__(f"Provisioning failed for {len(failures)} resource(s): {details}")


class ResourceTimeoutError(PlanError):
    """Raised when a resource does not reach a terminal status in time."""

    def __init__(self, address: str, timeout: float):
        self.address = address
        self.timeout = timeout
        super().__init__(f"{address} did not reach a terminal state within {timeout:.0f}s")


class DependencyStillPresentError(PlanError):
    """Raised when a destroy would remove a resource that is still referenced."""

    def __init__(self, address: str, dependents: list[str]):
        self.address = address
        self.dependents = dependents
        super().__init__(
            f"Cannot delete {address}: still referenced by {', '.join(dependents)}"
        )


class ExternalApiError(PlanError):
    """Raised when the provisioning API rejects or fails an operation.

    Attributes:
        code: Error code reported by the API (if any)
        transient: True when the API signalled a temporary condition
            (throttling, timeouts, conflicts). The core never retries on its
            own; callers may re-run the whole apply.
    """

    TRANSIENT_CODES = (
        "TooManyRequests",
        "ServiceUnavailable",
        "GatewayTimeout",
        "RequestTimeout",
        "Conflict",
        "AnotherOperationInProgress",
        "RetryableError",
    )

    TRANSIENT_PATTERNS = (
        "timeout",
        "timed out",
        "throttl",
        "temporarily unavailable",
        "connection reset",
        "service unavailable",
        "conflict",
    )

    def __init__(self, message: str, code: str | None = None, transient: bool = False):
        self.code = code
        self.transient = transient
        super().__init__(message)

    @classmethod
    def from_message(cls, message: str, code: str | None = None) -> "ExternalApiError":
        """Build an error, classifying it as transient from code and message."""
        transient = bool(code and code in cls.TRANSIENT_CODES)
        if not transient:
            lowered = message.lower()
            transient = any(pattern in lowered for pattern in cls.TRANSIENT_PATTERNS)
        return cls(message.strip(), code=code, transient=transient)
