"""SQLAlchemy models for the sourcing database."""

from talent_sourcing.models.base import Base
from talent_sourcing.models.candidates import Candidate, CandidateIntelligenceSnapshot
from talent_sourcing.models.enums import (
    CandidateSourceTypeEnum,
    EnrichmentStatusEnum,
    JobTrackEnum,
    MatchTierEnum,
    QueueJobStateEnum,
    SnapshotTrackEnum,
    SourcingStatusEnum,
)
from talent_sourcing.models.sourcing import (
    JobSourcingCandidate,
    JobSourcingRequest,
    SourcingQueueJob,
)

__all__ = [
    # Base
    "Base",
    # Enums
    "CandidateSourceTypeEnum",
    "EnrichmentStatusEnum",
    "JobTrackEnum",
    "MatchTierEnum",
    "QueueJobStateEnum",
    "SnapshotTrackEnum",
    "SourcingStatusEnum",
    # Candidates
    "Candidate",
    "CandidateIntelligenceSnapshot",
    # Sourcing
    "JobSourcingRequest",
    "JobSourcingCandidate",
    "SourcingQueueJob",
]
