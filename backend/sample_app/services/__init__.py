from .cancellation import CancellationScope, CancellationToken
from .request_counter import RequestCounter
from .sample_service import SampleService, accumulate

__all__ = [
    "CancellationScope",
    "CancellationToken",
    "RequestCounter",
    "SampleService",
    "accumulate",
]
