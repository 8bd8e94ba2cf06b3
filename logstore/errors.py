# logstore/errors.py
"""
Error taxonomy shared by the store, the services and the HTTP boundary.

- ValidationError: caller input violates a contract (4xx, never retried)
- PersistenceError: the database rejected or could not serve an operation (5xx / exit 1)
- OperationCancelled: a caller-supplied deadline expired or cancel was requested
"""


class LogStoreError(Exception):
    """Base class for every error raised by logstore."""


class ValidationError(LogStoreError):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PersistenceError(LogStoreError):
    """The durable medium is unreachable or rejected the operation.

    The underlying driver exception is always chained (``raise ... from e``).
    """


class OperationCancelled(LogStoreError):
    def __init__(self, operation: str):
        super().__init__(f"{operation} cancelled: deadline expired")
        self.operation = operation
