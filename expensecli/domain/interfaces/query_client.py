"""Interface for the remote GraphQL service.

Defines the contract for executing queries and mutations. Implementations
translate vendor specific failures into ErrorClassification values at this
boundary, so callers never inspect vendor error strings themselves.
"""

import abc
from typing import Optional

# Import relevant domain models
from ..models.common import GraphQLDocument, Variables
from ..models.expense import ErrorClassification, QueryResponse


class RemoteQueryError(Exception):
    """Transport-level failure: the request produced no usable GraphQL response."""

    def __init__(
        self,
        message: str,
        error_type: Optional[str] = None,
        classification: ErrorClassification = ErrorClassification.TERMINAL,
    ):
        self.message = message
        self.error_type = error_type
        self.classification = classification
        super().__init__(message)

    @property
    def is_throttled(self) -> bool:
        return self.classification is ErrorClassification.THROTTLED


class RemoteQueryClient(abc.ABC):
    """Abstract Base Class for GraphQL transports."""

    @abc.abstractmethod
    async def execute(self, query: GraphQLDocument, variables: Variables) -> QueryResponse:
        """Executes a query or mutation asynchronously.

        A response holding both ``data`` and ``errors`` is a normal result,
        not a failure.

        Args:
            query: The GraphQL document to execute.
            variables: Variables for the document.

        Returns:
            The QueryResponse with classified errors.

        Raises:
            RemoteQueryError: If the request failed at the transport level.
        """
        pass

    async def aclose(self) -> None:
        """Releases transport resources. No-op by default."""
        pass
