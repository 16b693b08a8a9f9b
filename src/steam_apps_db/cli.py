"""
Command-line interface for steam-apps-db.

Provides commands to import the Steam catalog, fetch data for single
apps or batches of due apps, and run a full sync with the in-process
queue.
"""

import asyncio
import json
import sys
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from steam_apps_db.catalog import select_apps_for_details, select_apps_for_news
from steam_apps_db.config import get_settings
from steam_apps_db.logger import get_logger, setup_logging
from steam_apps_db.runtime import Runtime, build_runtime
from steam_apps_db.sync import run_batch

logger = get_logger(__name__, component="cli")

DEFAULT_BATCH_COUNT = 10


class CLIOutput(BaseModel):
    """Structured output for CLI commands."""

    success: bool
    command: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: dict[str, Any] | list[Any] | None = None
    error: str | None = None


def print_json(output: CLIOutput) -> None:
    """Print output as formatted JSON."""
    print(json.dumps(output.model_dump(), indent=2, default=str))


def _runtime() -> Runtime:
    runtime = build_runtime()
    runtime.database.create_schema()
    return runtime


async def cmd_test_config() -> None:
    """Test configuration loading."""
    settings = get_settings()

    output = CLIOutput(
        success=True,
        command="test-config",
        data={
            "environment": settings.environment,
            "steam_base_url": settings.steam.base_url,
            "steam_store_url": settings.steam.store_url,
            "api_key_configured": settings.steam.api_key is not None,
            "database_url": settings.database.url,
            "queue": settings.queue.name,
            "decay_seconds": settings.queue.decay_seconds,
            "coordination": settings.queue.coordination,
            "news_scanning": settings.queue.enable_news_scanning,
            "workshop_scanning": settings.queue.enable_workshop_scanning,
        },
    )
    print_json(output)


async def cmd_init_db() -> None:
    """Create the database schema."""
    async with _runtime() as runtime:
        output = CLIOutput(
            success=True,
            command="init-db",
            data={"database_url": runtime.settings.database.url},
        )
    print_json(output)


async def cmd_import_apps() -> None:
    """Import the app list and queue fetch jobs for due apps."""
    async with _runtime() as runtime:
        result = await runtime.importer.import_apps()

    print_json(
        CLIOutput(
            success=result.error is None,
            command="import-apps",
            data=result.to_dict(),
            error=result.error,
        )
    )


async def cmd_fetch_details(app_id: int | None = None, count: int = DEFAULT_BATCH_COUNT) -> None:
    """Fetch and store details for one app, or for a batch of due apps."""
    async with _runtime() as runtime:
        if app_id is None:
            app_ids = select_apps_for_details(
                runtime.database, count, config=runtime.settings.schedule
            )
            logger.info("Fetching details batch", count=count, selected=len(app_ids))
            batch = await run_batch(
                runtime.details.fetch_details,
                app_ids,
                delay_seconds=runtime.settings.queue.decay_seconds,
            )
            output = CLIOutput(success=True, command="fetch-details", data=batch.to_dict())
        else:
            logger.info("Fetching details", app_id=app_id)
            results = await runtime.details.fetch_details(app_id)
            output = CLIOutput(
                success=True,
                command="fetch-details",
                data={
                    "app_id": app_id,
                    "found": results is not None,
                    "changed": sorted(k for k, v in (results or {}).items() if v.changed),
                },
            )

    print_json(output)


async def cmd_fetch_news(app_id: int | None = None, count: int = DEFAULT_BATCH_COUNT) -> None:
    """Fetch and store news for one app, or for a batch of due apps."""
    async with _runtime() as runtime:
        if app_id is None:
            app_ids = select_apps_for_news(
                runtime.database, count, config=runtime.settings.schedule
            )
            logger.info("Fetching news batch", count=count, selected=len(app_ids))
            batch = await run_batch(
                runtime.news.fetch_news,
                app_ids,
                delay_seconds=runtime.settings.queue.decay_seconds,
            )
            output = CLIOutput(success=True, command="fetch-news", data=batch.to_dict())
        else:
            logger.info("Fetching news", app_id=app_id)
            result = await runtime.news.fetch_news(app_id)
            output = CLIOutput(
                success=True,
                command="fetch-news",
                data={
                    "app_id": app_id,
                    "found": result is not None,
                    "inserted": result.inserted if result else 0,
                    "updated": result.updated if result else 0,
                },
            )

    print_json(output)


async def cmd_fetch_workshop(app_id: int, cursor: str = "*") -> None:
    """Fetch one page of workshop items for one app."""
    logger.info("Fetching workshop page", app_id=app_id, cursor=cursor)

    async with _runtime() as runtime:
        next_cursor = await runtime.workshop.fetch_page(app_id, cursor)

    print_json(
        CLIOutput(
            success=True,
            command="fetch-workshop",
            data={"app_id": app_id, "cursor": cursor, "next_cursor": next_cursor},
        )
    )


async def cmd_sync(max_jobs: int | None = None) -> None:
    """Import the catalog, then drain the queue."""
    async with _runtime() as runtime:
        result = await runtime.importer.import_apps()
        outcomes = await runtime.worker.run_until_idle(max_jobs=max_jobs)

    states: dict[str, int] = {}
    for outcome in outcomes:
        states[outcome.state.value] = states.get(outcome.state.value, 0) + 1

    print_json(
        CLIOutput(
            success=result.error is None,
            command="sync",
            data={"import": result.to_dict(), "jobs": states},
            error=result.error,
        )
    )


def print_usage() -> None:
    """Print CLI usage information."""
    usage = """
steam-apps-db CLI
=================

Usage: python -m steam_apps_db.cli <command> [arguments]

Commands:
  test-config                       Show the loaded configuration
  init-db                           Create the database schema
  import-apps                       Import the app list and queue due jobs
  fetch-details [count]             Fetch details for up to count due apps (default 10)
  fetch-news [count]                Fetch news for up to count due apps (default 10)
  fetch-workshop <app_id> [cursor]  Fetch one page of workshop items
  sync                              Import, then run every queued job

Options:
  --appid <app_id>                  fetch-details / fetch-news: only this app
  --max-jobs <n>                    Stop sync after n job executions

Examples:
  python -m steam_apps_db.cli fetch-details --appid 1091500
  python -m steam_apps_db.cli fetch-news 50
  python -m steam_apps_db.cli sync --max-jobs 100
"""
    print(usage)


def _option(name: str) -> str | None:
    if name not in sys.argv:
        return None
    idx = sys.argv.index(name)
    return sys.argv[idx + 1] if idx + 1 < len(sys.argv) else None


def _batch_args() -> tuple[int | None, int]:
    """Parse `[count] [--appid <app_id>]`."""
    appid = _option("--appid")
    args = sys.argv[2:]
    positional = [
        arg
        for i, arg in enumerate(args)
        if not arg.startswith("--") and (i == 0 or args[i - 1] != "--appid")
    ]
    count = int(positional[0]) if positional else DEFAULT_BATCH_COUNT
    return (int(appid) if appid is not None else None), count


def _require_app_id() -> int:
    if len(sys.argv) < 3:
        print("Error: app_id required")
        sys.exit(1)
    return int(sys.argv[2])


def main() -> None:
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        print_usage()
        sys.exit(1)

    setup_logging()
    command = sys.argv[1]

    try:
        if command == "test-config":
            asyncio.run(cmd_test_config())

        elif command == "init-db":
            asyncio.run(cmd_init_db())

        elif command == "import-apps":
            asyncio.run(cmd_import_apps())

        elif command == "fetch-details":
            app_id, count = _batch_args()
            asyncio.run(cmd_fetch_details(app_id, count))

        elif command == "fetch-news":
            app_id, count = _batch_args()
            asyncio.run(cmd_fetch_news(app_id, count))

        elif command == "fetch-workshop":
            app_id = _require_app_id()
            cursor = sys.argv[3] if len(sys.argv) > 3 else "*"
            asyncio.run(cmd_fetch_workshop(app_id, cursor))

        elif command == "sync":
            max_jobs = _option("--max-jobs")
            asyncio.run(cmd_sync(int(max_jobs) if max_jobs is not None else None))

        elif command in ("help", "--help", "-h"):
            print_usage()

        else:
            print(f"Unknown command: {command}")
            print_usage()
            sys.exit(1)

    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.exception("CLI error", error=str(e))
        output = CLIOutput(
            success=False,
            command=command,
            error=str(e),
        )
        print_json(output)
        sys.exit(1)


if __name__ == "__main__":
    main()
