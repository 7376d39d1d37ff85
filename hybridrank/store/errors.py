"""Domain exceptions for the feature store.

Infrastructure failures (connection, migration) and domain failures
(missing statements, rejected batches) share the ``FeatureStoreError``
base so callers can handle the store layer as a whole.
"""


class FeatureStoreError(Exception):
    """Base exception for all feature store errors."""


class StoreConnectionError(FeatureStoreError):
    """Raised when the database connection is missing or unusable."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class StatementNotFoundError(FeatureStoreError):
    """Raised when a research statement id does not exist."""

    def __init__(self, statement_id: int) -> None:
        """Initialize the error with the missing statement id.

        Args:
            statement_id: The statement id that was not found.
        """
        self.statement_id = statement_id
        super().__init__(f"Research statement not found: {statement_id}")


class MigrationError(FeatureStoreError):
    """Raised when a schema migration cannot be applied or rolled back."""

    def __init__(self, version: int, message: str) -> None:
        """Initialize the migration error.

        Args:
            version: Schema version that failed.
            message: Underlying failure description.
        """
        self.version = version
        super().__init__(f"Migration {version} failed: {message}")


class BatchUpdateError(FeatureStoreError):
    """Raised when a transactional batch update is rolled back."""

    def __init__(self, operation: str, size: int, cause: str) -> None:
        """Initialize the batch error.

        Args:
            operation: Name of the batch operation.
            size: Number of rows in the rejected batch.
            cause: Underlying failure description.
        """
        self.operation = operation
        self.size = size
        super().__init__(f"Batch {operation} of {size} rows rolled back: {cause}")


class VectorEncodingError(FeatureStoreError, ValueError):
    """Raised when a vector cannot be serialized for storage."""
