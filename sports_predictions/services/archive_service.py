"""
@file: archive_service.py
@description:
The archival sweep: marks every unarchived event dated before
`now - retention_days` as archived in one UPDATE.

The sweep is idempotent and monotone: it only ever sets `is_archived` to true,
and running it twice with the same clock changes nothing the second time.

@dependencies:
- sports_predictions.repositories.event_repository: the bulk update
- sports_predictions.db.session: Database handle for on-demand runs

@notes:
- `run_archive_sweep` is the on-demand trigger used by the CLI and by the
  scheduled Celery task.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from sports_predictions.core.config import Settings
from sports_predictions.core.errors import StorageError, ValidationError
from sports_predictions.core.logger import setup_logger
from sports_predictions.db.session import Database
from sports_predictions.db.types import utc_now
from sports_predictions.repositories.event_repository import EventRepository, archive_cutoff
from sports_predictions.services.identity import format_instant

logger = setup_logger("sports_predictions.services.archive_service")


@dataclass(frozen=True)
class ArchiveResult:
    archived_count: int
    retention_days: int
    archived_before: datetime
    total_archived: int

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["archived_before"] = format_instant(self.archived_before)
        return result


class ArchiveService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.events = EventRepository(session)

    async def archive_old_events(self, retention_days: int, now: Optional[datetime] = None) -> ArchiveResult:
        """
        Archive events older than the retention period.

        Args:
            retention_days: Events dated before now minus this many days are archived.
            now: Reference instant, defaults to the current UTC time.

        Returns:
            ArchiveResult: rows changed by this run, the cutoff and the total
            number of archived events afterwards.

        Raises:
            ValidationError: if retention_days is negative.
            StorageError: if the update fails; nothing is archived.
        """
        if retention_days < 0:
            raise ValidationError("retention_days must be zero or greater")

        now = now or utc_now()
        cutoff = archive_cutoff(retention_days, now)
        logger.info(f"Starting archival job (retention {retention_days} days, cutoff {format_instant(cutoff)})")

        try:
            archived_count = await self.events.archive_older_than(retention_days, now)
            total_archived = await self.events.count_archived()
        except StorageError as e:
            logger.error(f"Archival job failed: {e.message}")
            raise

        result = ArchiveResult(
            archived_count=archived_count,
            retention_days=retention_days,
            archived_before=cutoff,
            total_archived=total_archived,
        )
        logger.info(
            f"Archival job completed: {archived_count} events archived "
            f"before {format_instant(cutoff)} ({total_archived} archived in total)"
        )
        return result


async def run_archive_sweep(settings: Settings, retention_days: Optional[int] = None) -> ArchiveResult:
    """
    Run one sweep with a Database handle owned for the duration of the run.
    The update and the count share a transaction that rolls back on failure.
    """
    days = settings.ARCHIVE_RETENTION_DAYS if retention_days is None else retention_days
    database = Database(settings)
    await database.init()
    try:
        async with database.session() as session:
            return await ArchiveService(session).archive_old_events(days)
    finally:
        await database.dispose()
