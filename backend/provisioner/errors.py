"""Exceptions raised by the provisioner."""


class ProvisionerError(Exception):
    """Base class for provisioner failures."""


class ProviderCallError(ProvisionerError):
    """A create/describe/delete call against the cloud provider failed.

    Aborts the current deploy or remove. State checkpointed before the
    failure stays valid, so re-running the operation resumes from there.
    """

    def __init__(self, operation: str, message: str, error_code: str | None = None):
        self.operation = operation
        self.error_code = error_code
        super().__init__(f"{operation} failed: {message}")


class MissingResourcePrecondition(ProvisionerError):
    """A dependent step ran without the identifier it requires."""

    def __init__(self, role: str, required: str):
        self.role = role
        self.required = required
        super().__init__(f"Cannot provision {role}: {required} is not recorded in state")


class UnknownComponentError(ProvisionerError):
    """No component factory is registered for the requested type."""
