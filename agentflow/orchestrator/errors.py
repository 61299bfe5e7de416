"""Error taxonomy for AgentFlow core operations.

Internal code raises these; public operations convert them into tagged
failure results using ``code`` and the exception message.
"""


class AgentFlowError(Exception):
    """Base class for all core errors."""
    code = "AgentFlowError"


class AuthenticationRequired(AgentFlowError):
    """Raised when an operation is invoked without a user."""
    code = "AuthenticationRequired"


class NotFoundError(AgentFlowError):
    """Raised when an agent or task does not exist."""
    code = "NotFoundError"


class AgentNotFound(NotFoundError):
    """Raised when the referenced agent does not exist."""
    code = "AgentNotFound"


class InvalidTransition(NotFoundError):
    """Raised when a dependency is not in a state the operation accepts."""
    code = "InvalidTransition"


class PermissionDenied(AgentFlowError):
    """Raised when the caller does not own the agent."""
    code = "PermissionDenied"


class ValidationError(AgentFlowError):
    """Raised for malformed input."""
    code = "ValidationError"


class EmptyInput(ValidationError):
    """Raised when user input is below the minimum length."""
    code = "EmptyInput"


class ProviderFailure(AgentFlowError):
    """Raised when the LLM gateway fails, times out or returns nothing usable."""
    code = "ProviderFailure"


class PartialMaterializationFailure(AgentFlowError):
    """Reported when some items of a batch failed to insert."""
    code = "PartialMaterializationFailure"


class StoreError(AgentFlowError):
    """Raised when the database is unavailable or rejects a write."""
    code = "StoreError"


class StaleWriteError(StoreError):
    """Raised when a row changed between read and write."""
    code = "StaleWriteError"
