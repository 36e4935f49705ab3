"""Error taxonomy for the thought engine.

Configuration and validation problems abort an operation before anything is
dispatched. Provider failures are raised by adapters and absorbed by the task
executor, which turns them into degraded results.
"""


class ThoughtError(Exception):
    """Base class for engine errors."""

    status_code = 500


class ConfigurationError(ThoughtError):
    """No provider is configured, or a requested provider is not among them."""

    status_code = 503


class NotFoundError(ThoughtError):
    """A session id does not exist in the session store."""

    status_code = 404


class ValidationError(ThoughtError):
    """Malformed or out-of-range input."""

    status_code = 422


class ProviderCallError(ThoughtError):
    """A provider call failed: transport fault, bad status or unusable body."""

    status_code = 502
