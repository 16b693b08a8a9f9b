"""
Sequential batch runs of a per-app fetch.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import asdict, dataclass, field
from typing import Any

from steam_apps_db.errors import AppSyncError
from steam_apps_db.logger import get_logger

logger = get_logger(__name__, component="batch")


@dataclass
class BatchResult:
    """Counts reported by one batch run."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    failed_app_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


async def run_batch(
    fetch: Callable[[int], Awaitable[Any]],
    app_ids: Sequence[int],
    *,
    delay_seconds: float = 0.0,
) -> BatchResult:
    """
    Fetch apps one after another, isolating failures per app.

    A fetch that raises AppSyncError or returns None counts as failed
    and the batch moves on to the next app.

    Args:
        fetch: Per-app fetch, e.g. DetailsFetcher.fetch_details
        app_ids: Apps to process, in order
        delay_seconds: Pause between consecutive fetches

    Returns:
        BatchResult: Success and failure counts
    """
    result = BatchResult(total=len(app_ids))
    logger.info("Batch started", total=result.total)

    for index, app_id in enumerate(app_ids):
        if index and delay_seconds > 0:
            await asyncio.sleep(delay_seconds)
        try:
            stored = await fetch(app_id)
        except AppSyncError as e:
            logger.error("App fetch failed", app_id=app_id, error=str(e))
            stored = None
        if stored is None:
            result.failed += 1
            result.failed_app_ids.append(app_id)
        else:
            result.succeeded += 1

    logger.info("Batch completed", succeeded=result.succeeded, failed=result.failed)
    return result
