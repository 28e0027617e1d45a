"""Application use cases - Business logic orchestration."""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

# Type variables for generic use case pattern
TRequest = TypeVar("TRequest")
TResponse = TypeVar("TResponse")


class UseCase(ABC, Generic[TRequest, TResponse]):
    """Base class for all use cases following command pattern."""

    @abstractmethod
    async def execute(self, request: TRequest) -> TResponse:
        """Execute the use case with the given request."""
        pass


# Import concrete use cases (after UseCase definition to avoid circular imports)
from mushee.application.use_cases.seed_public_scores import (  # noqa: E402
    SeedPublicScoresRequest,
    SeedPublicScoresUseCase,
    SeedReport,
)
from mushee.application.use_cases.upload_song import (  # noqa: E402
    UploadSongRequest,
    UploadSongResponse,
    UploadSongUseCase,
)

__all__ = [
    "UseCase",
    "SeedPublicScoresRequest",
    "SeedPublicScoresUseCase",
    "SeedReport",
    "UploadSongRequest",
    "UploadSongResponse",
    "UploadSongUseCase",
]
