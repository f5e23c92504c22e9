"""Storage contracts and their PostgreSQL / in-memory implementations."""

from talent_sourcing.repositories.base import (
    CandidateRepository,
    SnapshotStore,
    SourcingRequestStore,
)
from talent_sourcing.repositories.memory import (
    InMemoryCandidateRepository,
    InMemorySnapshotStore,
    InMemorySourcingRequestStore,
)

__all__ = [
    "CandidateRepository",
    "SnapshotStore",
    "SourcingRequestStore",
    "InMemoryCandidateRepository",
    "InMemorySnapshotStore",
    "InMemorySourcingRequestStore",
]
