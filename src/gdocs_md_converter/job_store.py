"""Per-job storage of finished conversion archives.

Archives live in memory, keyed by job id and owned by the Google user
that ran the conversion. Entries expire after a TTL and the oldest are
evicted once the store is full.
"""

import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field

from .config import settings
from .exceptions import ArchiveUnavailable
from .logger import get_logger

logger = get_logger(__name__)


@dataclass
class ArchiveRecord:
    """Archive produced by one conversion job."""

    job_id: str
    owner: str
    data: bytes
    file_count: int = 0
    created_at: float = field(default_factory=time.monotonic)


class ArchiveStore:
    """Thread-safe archive registry keyed by job id."""

    def __init__(self, ttl_seconds: int | None = None, max_jobs: int | None = None, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.archive_ttl_seconds
        self.max_jobs = max_jobs if max_jobs is not None else settings.archive_max_jobs
        self._clock = clock
        self._records: OrderedDict[str, ArchiveRecord] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._records)

    def put(self, owner: str, data: bytes, file_count: int = 0, job_id: str | None = None) -> str:
        """Store an archive and return its job id."""
        job_id = job_id or uuid.uuid4().hex
        record = ArchiveRecord(job_id=job_id, owner=owner, data=data, file_count=file_count, created_at=self._clock())
        with self._lock:
            self._purge_expired()
            self._records[job_id] = record
            self._records.move_to_end(job_id)
            while len(self._records) > self.max_jobs:
                evicted, _ = self._records.popitem(last=False)
                logger.info("Evicted archive", extra_data={"job_id": evicted})
        return job_id

    def get(self, owner: str, job_id: str | None = None) -> ArchiveRecord:
        """Fetch an archive owned by ``owner``.

        Args:
            owner: Identity of the requesting user
            job_id: Job to fetch; the owner's most recent job when omitted

        Raises:
            ArchiveUnavailable: If no matching, unexpired archive exists
        """
        with self._lock:
            self._purge_expired()
            if job_id is None:
                for record in reversed(self._records.values()):
                    if record.owner == owner:
                        return record
                raise ArchiveUnavailable("No zip file available")

            record = self._records.get(job_id)
            # Another owner's job is reported exactly like a missing one
            if record is None or record.owner != owner:
                raise ArchiveUnavailable(f"No zip file available for job {job_id}")
            return record

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [job_id for job_id, record in self._records.items() if now - record.created_at > self.ttl_seconds]
        for job_id in expired:
            del self._records[job_id]
