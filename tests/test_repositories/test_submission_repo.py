"""Tests for the in-memory submission store."""

from __future__ import annotations

from stagewire.models.submission import Submission
from stagewire.repositories.memory import InMemorySubmissionRepository


def _make(i: int) -> Submission:
    return Submission(id=i, text=f"t{i}", timestamp="ts")


async def test_empty() -> None:
    repo = InMemorySubmissionRepository()
    assert await repo.list_all() == []
    assert len(repo) == 0


async def test_insertion_order_preserved() -> None:
    repo = InMemorySubmissionRepository()
    for i in (3, 1, 2):
        await repo.add(_make(i))
    assert [s.id for s in await repo.list_all()] == [3, 1, 2]


async def test_list_all_returns_copy() -> None:
    repo = InMemorySubmissionRepository()
    await repo.add(_make(1))
    listed = await repo.list_all()
    listed.clear()
    assert len(repo) == 1
