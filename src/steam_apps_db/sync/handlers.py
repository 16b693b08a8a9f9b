"""
Job handlers for each fetch kind.
"""

from steam_apps_db.jobs import Handler, JobKind, JobPayload
from steam_apps_db.sync.details import DetailsFetcher
from steam_apps_db.sync.news import NewsFetcher
from steam_apps_db.sync.workshop import FIRST_CURSOR, WorkshopFetcher


def build_handlers(
    details: DetailsFetcher,
    news: NewsFetcher,
    workshop: WorkshopFetcher,
) -> dict[JobKind, Handler]:
    """Map each job kind to its fetch orchestrator."""

    async def handle_details(payload: JobPayload) -> JobPayload | None:
        await details.fetch_details(payload.app_id)
        return None

    async def handle_news(payload: JobPayload) -> JobPayload | None:
        await news.fetch_news(payload.app_id)
        return None

    async def handle_workshop(payload: JobPayload) -> JobPayload | None:
        next_cursor = await workshop.fetch_page(payload.app_id, payload.cursor or FIRST_CURSOR)
        if next_cursor is None:
            return None
        return JobPayload(job_kind=JobKind.WORKSHOP, app_id=payload.app_id, cursor=next_cursor)

    return {
        JobKind.DETAILS: handle_details,
        JobKind.NEWS: handle_news,
        JobKind.WORKSHOP: handle_workshop,
    }
