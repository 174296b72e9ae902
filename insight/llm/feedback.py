"""
Feedback Collection

Bounded, thread-safe store of recent analyses that users can rate.
Only the most recent records are kept; older ones fall off the end.
"""

import time
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, List, Optional


MIN_RATING = 1
MAX_RATING = 5


@dataclass
class FeedbackRecord:
    """A completed analysis and its (optional) user rating.

    Attributes:
        request_id: Request identifier returned with the analysis
        prompt: Prompt as sent by the caller
        response: Parsed analysis result
        model: Model that produced the response
        rating: User rating (1-5), once submitted
        comment: Free-form user comment
        variant_id: A/B variant applied to the request, if any
        timestamp: Creation time (epoch seconds)
    """
    request_id: str
    prompt: str
    response: Any
    model: str
    rating: Optional[int] = None
    comment: Optional[str] = None
    variant_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


class FeedbackStore:
    """Ring buffer of the most recent FeedbackRecords."""

    def __init__(self, capacity: int = 1000):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._records = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def add(self, record: FeedbackRecord):
        with self._lock:
            self._records.append(record)

    def find(self, request_id: str) -> Optional[FeedbackRecord]:
        with self._lock:
            for record in reversed(self._records):
                if record.request_id == request_id:
                    return record
        return None

    def rate(self, request_id: str, rating: int, comment: Optional[str] = None) -> Optional[FeedbackRecord]:
        """Attach a rating to a stored record.

        Returns:
            The updated record, or None if it is no longer retained

        Raises:
            ValueError: If the rating is outside 1-5
        """
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValueError(f"rating must be between {MIN_RATING} and {MAX_RATING}")

        with self._lock:
            for record in reversed(self._records):
                if record.request_id == request_id:
                    record.rating = rating
                    record.comment = comment
                    return record
        return None

    def records(self) -> List[FeedbackRecord]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
