"""Exceptions raised by the sourcing pipeline."""


class SourcingError(Exception):
    """Base class for sourcing pipeline errors."""


class SourcingRequestNotFound(SourcingError):
    def __init__(self, request_id: str):
        super().__init__(f"Sourcing request {request_id} not found")
        self.request_id = request_id


class InvalidStatusTransition(SourcingError):
    def __init__(self, current: str, target: str):
        super().__init__(f"Invalid sourcing status transition: {current} -> {target}")
        self.current = current
        self.target = target


class EnqueueError(SourcingError):
    """The request record was written but its queue job could not be added."""


class DuplicateJobError(SourcingError):
    def __init__(self, job_id: str):
        super().__init__(f"Queue already holds a live job with id {job_id}")
        self.job_id = job_id


class CallbackDeliveryError(SourcingError):
    """A single callback attempt failed (non-2xx response or transport error)."""


class MalformedSnapshotError(SourcingError):
    """A candidate intelligence snapshot does not have the expected shape."""
