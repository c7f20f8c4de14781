"""Delivery tracking: append-only history and statistics over it."""

from collections import Counter, defaultdict
from datetime import datetime
from typing import Any
from uuid import UUID

from herald.core.logging import get_logger
from herald.modules.notification.domain.entities.delivery_record import DeliveryRecord
from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.enums import (
    DeliveryStatus,
    NotificationChannel,
    NotificationType,
    StatsGroupBy,
)
from herald.modules.notification.domain.interfaces.repositories import (
    IDeliveryHistoryRepository,
)
from herald.modules.notification.domain.interfaces.services import IClock

logger = get_logger(__name__)

TOP_FAILURE_REASONS = 5


def period_key(moment: datetime, group_by: StatsGroupBy) -> str:
    """Bucket label: ``2024-03-05``, ``2024-W10`` (ISO week) or ``2024-03``."""
    if group_by == StatsGroupBy.WEEK:
        iso = moment.isocalendar()
        return f"{iso.year}-W{iso.week:02d}"
    if group_by == StatsGroupBy.MONTH:
        return moment.strftime("%Y-%m")
    return moment.strftime("%Y-%m-%d")


def _empty_counts() -> dict[str, int]:
    return {"sent": 0, "delivered": 0, "failed": 0}


class DeliveryTracker:
    """Writes delivery records and aggregates them for reporting."""

    def __init__(self, history: IDeliveryHistoryRepository, clock: IClock):
        self.history = history
        self.clock = clock

    async def record(
        self,
        unit: DeliveryUnit,
        *,
        is_final: bool,
        at: datetime | None = None,
        error: str | None = None,
    ) -> DeliveryRecord:
        """Append a record reflecting the unit's current state.

        Args:
            unit: Unit whose status and attempt count are recorded
            is_final: Whether this is the unit's terminal record
            at: Record time, defaults to now
            error: Failure detail, defaults to the unit's last error

        Returns:
            The appended record
        """
        record = DeliveryRecord(
            unit_id=unit.id,
            notification_id=unit.notification_id,
            user_id=unit.user_id,
            notification_type=unit.notification_type,
            channel=unit.channel,
            status=unit.status,
            attempt=unit.attempts,
            is_final=is_final,
            unit_created_at=unit.created_at,
            recorded_at=at or self.clock.now(),
            error=error if error is not None else unit.last_error,
            next_retry_at=None if is_final else unit.next_retry_at,
        )
        await self.history.append(record)

        logger.debug(
            "Delivery recorded",
            unit_id=str(unit.id),
            channel=unit.channel.value,
            status=unit.status.value,
            attempt=unit.attempts,
            is_final=is_final,
        )
        return record

    async def aggregate(
        self,
        user_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        group_by: StatsGroupBy = StatsGroupBy.DAY,
        channel: NotificationChannel | None = None,
        notification_type: NotificationType | None = None,
    ) -> dict[str, Any]:
        """
        Compute delivery statistics over the history log.

        A unit counts as sent once any record shows a transport attempt;
        delivered, failed, expired and cancelled come from final records.
        Channels and types without records do not appear in the breakdowns.

        Args:
            user_id: Restrict to one user, None for global stats
            start: Inclusive lower bound on record time
            end: Exclusive upper bound on record time
            group_by: Period bucket size, keyed by unit creation time
            channel: Optional channel filter
            notification_type: Optional type filter

        Returns:
            Statistics dictionary
        """
        records = [
            record
            for record in await self.history.find(user_id=user_id, start=start, end=end)
            if (channel is None or record.channel == channel)
            and (notification_type is None or record.notification_type == notification_type)
        ]

        first_seen: dict[UUID, DeliveryRecord] = {}
        sent_units: set[UUID] = set()
        finals: dict[UUID, DeliveryRecord] = {}

        for record in records:
            first_seen.setdefault(record.unit_id, record)
            if record.counts_as_sent:
                sent_units.add(record.unit_id)
            if record.is_final:
                finals[record.unit_id] = record

        by_channel: dict[str, dict[str, int]] = defaultdict(_empty_counts)
        by_type: dict[str, dict[str, int]] = defaultdict(_empty_counts)
        by_period: dict[str, dict[str, int]] = defaultdict(_empty_counts)
        status_totals: Counter[DeliveryStatus] = Counter()
        failure_reasons: Counter[str] = Counter()
        latencies: list[float] = []

        for unit_id, first in first_seen.items():
            buckets = (
                by_channel[first.channel.value],
                by_type[first.notification_type.value],
                by_period[period_key(first.unit_created_at, group_by)],
            )

            if unit_id in sent_units:
                for bucket in buckets:
                    bucket["sent"] += 1

            final = finals.get(unit_id)
            if final is None:
                continue

            status_totals[final.status] += 1
            if final.status == DeliveryStatus.DELIVERED:
                latencies.append(final.latency_ms)
                for bucket in buckets:
                    bucket["delivered"] += 1
            elif final.status == DeliveryStatus.FAILED:
                failure_reasons[final.error or "unknown"] += 1
                for bucket in buckets:
                    bucket["failed"] += 1

        total_sent = len(sent_units)
        total_delivered = status_totals[DeliveryStatus.DELIVERED]

        return {
            "user_id": user_id,
            "period": {
                "start": start.isoformat() if start else None,
                "end": end.isoformat() if end else None,
                "group_by": group_by.value,
            },
            "total_sent": total_sent,
            "total_delivered": total_delivered,
            "total_failed": status_totals[DeliveryStatus.FAILED],
            "total_expired": status_totals[DeliveryStatus.EXPIRED],
            "total_cancelled": status_totals[DeliveryStatus.CANCELLED],
            "delivery_rate": round(total_delivered / total_sent * 100, 2) if total_sent else 0.0,
            "average_delivery_time_ms": round(sum(latencies) / len(latencies), 2)
            if latencies
            else 0.0,
            "by_channel": dict(by_channel),
            "by_type": dict(by_type),
            "by_period": dict(sorted(by_period.items())),
            "top_failure_reasons": [
                {"reason": reason, "count": count}
                for reason, count in failure_reasons.most_common(TOP_FAILURE_REASONS)
            ],
        }
