"""Protocol-based repository interfaces.

Implementations satisfy these protocols structurally (no inheritance).
Test doubles can be plain classes or mocks matching the same signature.
"""

from typing import Protocol

from stagewire.models.submission import Submission


class SubmissionRepository(Protocol):
    async def add(self, submission: Submission) -> Submission: ...
    async def list_all(self) -> list[Submission]: ...
