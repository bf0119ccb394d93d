"""
In-memory stores for registered instances and operator broadcasts.

State lives only in the running process and is lost on restart. Each store
guards its collection with a lock; every public method runs entirely under it,
and reads hand out deep copies so callers always see a consistent snapshot.
"""

import hmac
import itertools
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from app.exceptions import AuthError, ValidationError
from app.models import Broadcast, Instance, Stats

logger = logging.getLogger(__name__)

Clock = Callable[[], int]

# Liveness windows (milliseconds)
ACTIVE_WINDOW_MS = 5 * 60 * 1000  # counted as active in stats
STALE_AFTER_MS = 24 * 60 * 60 * 1000  # pruned on the next registration

MAX_BROADCASTS = 50


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def iso_timestamp(millis: int) -> str:
    """Format epoch milliseconds as an ISO 8601 UTC string, e.g. 2024-01-01T00:00:00.000Z."""
    moment = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class InstanceRegistry:
    """Registry of bot instances keyed by instance id."""

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or now_ms
        self._lock = threading.Lock()
        # instance_id -> Instance, in first-registration order
        self._instances: Dict[str, Instance] = {}

    def register(
        self,
        instance_id: Optional[str],
        owner: Optional[str] = None,
        version: Optional[str] = None,
        user_count: Optional[int] = None,
        group_count: Optional[int] = None,
        source_address: Optional[str] = None,
    ) -> Instance:
        """
        Create or update an instance record, then prune stale instances.

        Every call is a full snapshot of the instance: omitted fields fall
        back to their defaults, so counters always reflect the latest report.
        ``first_seen`` is never overwritten.

        Raises:
            ValidationError: if ``instance_id`` is missing or blank
        """
        instance_id = (instance_id or "").strip()
        if not instance_id:
            raise ValidationError("instanceId is required")

        with self._lock:
            now = self._clock()
            existing = self._instances.get(instance_id)

            if existing is None:
                record = Instance(
                    instance_id=instance_id,
                    first_seen=now,
                    last_ping=now,
                    ip=source_address,
                )
                logger.info(f"New instance registered: {instance_id}")
            else:
                record = existing

            record.owner = owner or "Unknown"
            record.version = version or "1.0.0"
            record.user_count = user_count or 0
            record.group_count = group_count or 0

            record.last_ping = now
            record.status = "online"
            record.ip = source_address
            self._instances[instance_id] = record

            # Pruning is driven by registrations on purpose: there is no timer,
            # so stale records disappear only when some instance checks in.
            self._prune(now)

            return record.model_copy(deep=True)

    def prune(self, now: Optional[int] = None) -> int:
        """Remove instances whose last ping is older than 24 hours."""
        with self._lock:
            return self._prune(self._clock() if now is None else now)

    def _prune(self, now: int) -> int:
        stale = [
            instance_id
            for instance_id, record in self._instances.items()
            if now - record.last_ping >= STALE_AFTER_MS
        ]
        for instance_id in stale:
            del self._instances[instance_id]

        if stale:
            logger.info(f"Pruned {len(stale)} stale instance(s): {', '.join(stale)}")
        return len(stale)

    def get_stats(self) -> Stats:
        """Aggregate counters over all retained instances."""
        with self._lock:
            now = self._clock()
            records = list(self._instances.values())
            return Stats(
                total_instances=len(records),
                active_instances=sum(
                    1 for r in records if now - r.last_ping < ACTIVE_WINDOW_MS
                ),
                total_users=sum(r.user_count for r in records),
                total_groups=sum(r.group_count for r in records),
                last_updated=iso_timestamp(now),
            )

    def list_instances(self) -> List[Instance]:
        """All retained instances, most recently seen first."""
        with self._lock:
            records = sorted(
                self._instances.values(), key=lambda r: r.last_ping, reverse=True
            )
            return [r.model_copy(deep=True) for r in records]

    def get(self, instance_id: str) -> Optional[Instance]:
        with self._lock:
            record = self._instances.get(instance_id)
            return record.model_copy(deep=True) if record else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._instances)


class BroadcastLog:
    """Bounded log of operator broadcasts with per-instance delivery tracking."""

    def __init__(
        self,
        owner_key: str,
        clock: Optional[Clock] = None,
        capacity: int = MAX_BROADCASTS,
    ):
        self._owner_key = owner_key
        self._clock = clock or now_ms
        self._capacity = capacity
        self._lock = threading.Lock()
        self._sequence = itertools.count(1)
        # Creation order, oldest first
        self._broadcasts: List[Broadcast] = []

    def _check_owner_key(self, owner_key: Any) -> None:
        if not isinstance(owner_key, str) or not hmac.compare_digest(
            owner_key.encode("utf-8"), self._owner_key.encode("utf-8")
        ):
            logger.warning("Rejected broadcast with invalid owner key")
            raise AuthError("Invalid owner key")

    def create(self, message: Any, owner_key: Any) -> Broadcast:
        """
        Append a new active broadcast and evict the oldest beyond capacity.

        Raises:
            AuthError: if ``owner_key`` does not match the configured secret
            ValidationError: if ``message`` is missing, blank or not a string
        """
        self._check_owner_key(owner_key)

        text = message.strip() if isinstance(message, str) else ""
        if not text:
            raise ValidationError("Message is required")

        with self._lock:
            created = self._clock()
            broadcast = Broadcast(
                id=f"bc_{created}_{next(self._sequence)}",
                message=text,
                created=created,
            )
            self._broadcasts.append(broadcast)

            overflow = len(self._broadcasts) - self._capacity
            if overflow > 0:
                evicted = self._broadcasts[:overflow]
                del self._broadcasts[:overflow]
                logger.debug(
                    f"Evicted {overflow} broadcast(s): "
                    f"{', '.join(b.id for b in evicted)}"
                )

            logger.info(f"Broadcast created: {broadcast.id}")
            return broadcast.model_copy(deep=True)

    def list_pending(self, instance_id: str) -> List[Broadcast]:
        """Active broadcasts the instance has not acknowledged, in creation order."""
        with self._lock:
            return [
                b.model_copy(deep=True)
                for b in self._broadcasts
                if b.status == "active" and instance_id not in b.delivered_to
            ]

    def acknowledge_delivery(
        self, instance_id: Optional[str], broadcast_id: Optional[str]
    ) -> bool:
        """
        Record that an instance received a broadcast.

        Unknown broadcasts and repeated acknowledgments are silently accepted.
        Returns True only when a new delivery was recorded.
        """
        if not instance_id or not broadcast_id:
            return False

        with self._lock:
            broadcast = next(
                (b for b in self._broadcasts if b.id == broadcast_id), None
            )
            if broadcast is None or instance_id in broadcast.delivered_to:
                return False

            broadcast.delivered_to.append(instance_id)
            logger.debug(f"Broadcast {broadcast_id} delivered to {instance_id}")
            return True

    def list_all(self) -> List[Broadcast]:
        """All retained broadcasts, newest first."""
        with self._lock:
            # Reversing first keeps equal timestamps in newest-first order
            records = sorted(
                reversed(self._broadcasts), key=lambda b: b.created, reverse=True
            )
            return [b.model_copy(deep=True) for b in records]

    def get(self, broadcast_id: str) -> Optional[Broadcast]:
        with self._lock:
            for broadcast in self._broadcasts:
                if broadcast.id == broadcast_id:
                    return broadcast.model_copy(deep=True)
            return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._broadcasts)
