"""List-backed submission store.

Process lifetime only: submissions vanish on restart.
"""

from __future__ import annotations

from stagewire.models.submission import Submission


class InMemorySubmissionRepository:
    """Append-only SubmissionRepository in insertion order."""

    def __init__(self) -> None:
        self._items: list[Submission] = []

    async def add(self, submission: Submission) -> Submission:
        self._items.append(submission)
        return submission

    async def list_all(self) -> list[Submission]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)
