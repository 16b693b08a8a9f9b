"""Tests for sequential batch fetch runs."""

from collections.abc import Iterable

import pytest

from steam_apps_db.errors import AppSyncError
from steam_apps_db.sync import run_batch


class FakeFetch:
    """Per-app fetch that fails or finds nothing for chosen apps."""

    def __init__(self, failing: Iterable[int] = (), missing: Iterable[int] = ()) -> None:
        self.calls: list[int] = []
        self.failing = set(failing)
        self.missing = set(missing)

    async def __call__(self, app_id: int) -> dict[str, int] | None:
        self.calls.append(app_id)
        if app_id in self.failing:
            raise AppSyncError("boom", app_id=app_id)
        if app_id in self.missing:
            return None
        return {"app_id": app_id}


class TestRunBatch:
    """Tests for run_batch."""

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_the_batch(self) -> None:
        fetch = FakeFetch(failing={2}, missing={3})

        result = await run_batch(fetch, [1, 2, 3, 4])

        assert fetch.calls == [1, 2, 3, 4]
        assert result.total == 4
        assert result.succeeded == 2
        assert result.failed == 2
        assert result.failed_app_ids == [2, 3]

    @pytest.mark.asyncio
    async def test_empty_batch(self) -> None:
        result = await run_batch(FakeFetch(), [])

        assert result.to_dict() == {
            "total": 0,
            "succeeded": 0,
            "failed": 0,
            "failed_app_ids": [],
        }

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self) -> None:
        async def broken(app_id: int) -> None:
            raise RuntimeError("database gone")

        with pytest.raises(RuntimeError):
            await run_batch(broken, [1])
