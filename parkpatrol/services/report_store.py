"""Report store: durable local collection of reports with change notifications."""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import lru_cache
from typing import Literal

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from parkpatrol.database import async_session_maker
from parkpatrol.models import Report
from parkpatrol.schemas.report import ReportOut

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreChange:
    """A committed change to the report collection."""

    kind: Literal["created", "deleted"]
    reports: list[ReportOut]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


ChangeCallback = Callable[[StoreChange], Awaitable[None]]


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class ReportStore:
    """
    Owns the persisted report collection.

    Features:
    - Append/delete only (no update operation)
    - Newest-first reads with keyset pagination
    - Failures are logged and reported through return values, never raised
    - Observers are notified after every successful commit
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker
        self._observers: list[ChangeCallback] = []

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    async def _notify(self, change: StoreChange) -> None:
        for callback in list(self._observers):
            try:
                await callback(change)
            except Exception as e:
                logger.warning(f"Report observer failed on {change.kind}: {e}")

    async def create(
        self,
        latitude: float,
        longitude: float,
        location: str | None = None,
        timestamp: datetime | None = None,
    ) -> ReportOut | None:
        """
        Persist a new report.

        Returns:
            The stored report, or None if the write failed (already logged)
        """
        report = Report(
            timestamp=_to_utc(timestamp) if timestamp else datetime.now(UTC),
            latitude=latitude,
            longitude=longitude,
            location=location,
        )

        async with self._session_maker() as session:
            try:
                session.add(report)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Failed to save report at {latitude}, {longitude}: {e}")
                return None

            created = ReportOut.model_validate(report)

        logger.info(f"Created report {created.id} at {latitude}, {longitude} ({location})")
        await self._notify(StoreChange(kind="created", reports=[created]))
        return created

    async def list_reports(
        self,
        limit: int | None = None,
        before: tuple[datetime, int] | None = None,
    ) -> list[ReportOut]:
        """
        List reports newest first.

        Args:
            limit: Maximum number of reports to return
            before: Keyset cursor (timestamp, id); only older reports are returned
        """
        query = select(Report).order_by(Report.timestamp.desc(), Report.id.desc())

        if before is not None:
            cursor_time, cursor_id = before
            cursor_time = _to_utc(cursor_time)
            query = query.where(
                (Report.timestamp < cursor_time)
                | ((Report.timestamp == cursor_time) & (Report.id < cursor_id))
            )

        if limit is not None:
            query = query.limit(limit)

        async with self._session_maker() as session:
            result = await session.execute(query)
            return [ReportOut.model_validate(row) for row in result.scalars().all()]

    async def list_in_bbox(
        self,
        min_lat: float,
        min_lng: float,
        max_lat: float,
        max_lng: float,
        limit: int = 200,
    ) -> list[ReportOut]:
        """List reports inside a map viewport, newest first."""
        query = (
            select(Report)
            .where(
                Report.latitude.between(min_lat, max_lat),
                Report.longitude.between(min_lng, max_lng),
            )
            .order_by(Report.timestamp.desc(), Report.id.desc())
            .limit(limit)
        )

        async with self._session_maker() as session:
            result = await session.execute(query)
            return [ReportOut.model_validate(row) for row in result.scalars().all()]

    async def get(self, report_id: int) -> ReportOut | None:
        async with self._session_maker() as session:
            report = await session.get(Report, report_id)
            return ReportOut.model_validate(report) if report else None

    async def latest(self) -> ReportOut | None:
        """Most recent report, if any."""
        reports = await self.list_reports(limit=1)
        return reports[0] if reports else None

    async def count(self) -> int:
        async with self._session_maker() as session:
            result = await session.execute(select(func.count(Report.id)))
            return result.scalar() or 0

    async def delete(self, report: ReportOut | int) -> bool:
        """
        Delete a single report.

        Returns:
            True if the report was removed; False if it did not exist or the
            delete failed (store left unchanged)
        """
        report_id = report.id if isinstance(report, ReportOut) else report

        async with self._session_maker() as session:
            try:
                row = await session.get(Report, report_id)
                if row is None:
                    logger.warning(f"Report {report_id} not found, nothing to delete")
                    return False

                removed = ReportOut.model_validate(row)
                await session.delete(row)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Failed to delete report {report_id}: {e}")
                return False

        logger.info(f"Deleted report {report_id}")
        await self._notify(StoreChange(kind="deleted", reports=[removed]))
        return True

    async def delete_all(self, selection: Sequence[ReportOut | int] | None = None) -> int:
        """
        Delete the selected reports, or every report when selection is None.

        Returns:
            Number of reports removed (0 on failure)
        """
        query = select(Report)
        if selection is not None:
            ids = [r.id if isinstance(r, ReportOut) else r for r in selection]
            if not ids:
                return 0
            query = query.where(Report.id.in_(ids))

        async with self._session_maker() as session:
            try:
                result = await session.execute(query)
                removed = [ReportOut.model_validate(row) for row in result.scalars().all()]
                if not removed:
                    return 0

                await session.execute(
                    delete(Report).where(Report.id.in_([r.id for r in removed]))
                )
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Failed to clear history: {e}")
                return 0

        logger.info(f"Deleted {len(removed)} reports")
        await self._notify(StoreChange(kind="deleted", reports=removed))
        return len(removed)


@lru_cache
def get_report_store() -> ReportStore:
    """Get the process-wide report store."""
    return ReportStore(async_session_maker)
