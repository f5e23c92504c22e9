"""Database enums for the sourcing schema."""

import enum


class SourcingStatusEnum(str, enum.Enum):
    """Lifecycle of a sourcing request."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"
    CALLBACK_FAILED = "callback_failed"  # Results produced but never delivered


class JobTrackEnum(str, enum.Enum):
    """Which scoring path a job uses."""

    TECH = "tech"
    NON_TECH = "non_tech"


class SnapshotTrackEnum(str, enum.Enum):
    """Track of a candidate intelligence snapshot row."""

    TECH = "tech"
    NON_TECH = "non-tech"


class EnrichmentStatusEnum(str, enum.Enum):
    """Enrichment state of a candidate record."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class MatchTierEnum(str, enum.Enum):
    STRICT_LOCATION = "strict_location"
    EXPANDED_LOCATION = "expanded_location"


class CandidateSourceTypeEnum(str, enum.Enum):
    """How a candidate entered a sourcing result."""

    EXISTING = "existing"  # Already in the tenant's pool
    DISCOVERED = "discovered"  # Found by a discovery call for this request


class QueueJobStateEnum(str, enum.Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
