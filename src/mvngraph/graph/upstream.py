"""Transitive upstream resolution — breadth-first walk over the job relation.

The walker is pure: it knows nothing about SQL and receives two async lookups
from the store, the direct upstream jobs of a build and the last completed
build of a job. Visiting is per job, not per build, so the walk is bounded by
the number of jobs and terminates on cyclic graphs.
"""

from __future__ import annotations
import logging
from collections import deque
from typing import Awaitable, Callable

logger = logging.getLogger("mvngraph.graph")

DirectUpstreamLookup = Callable[[str, int], Awaitable[dict[str, int]]]
LastCompletedBuildLookup = Callable[[str], Awaitable["int | None"]]


def representative_build_number(last_completed: int | None, discovered: int) -> int:
    """The build used to expand a job during a transitive walk.

    Most recent completed build of the job; the build through which the job
    was discovered when no completion has been recorded yet.
    """
    if last_completed is not None:
        return last_completed
    return discovered


class UpstreamMemory:
    """Batch-scoped cache for transitive upstream computations.

    Owned by the caller and reused across many ``list_transitive_upstream_jobs``
    calls of one logical batch. Not synchronized: never share one instance
    between concurrent batches.
    """

    def __init__(self):
        self._direct: dict[tuple[str, int], dict[str, int]] = {}
        self._last_completed: dict[str, int | None] = {}
        self._transitive: dict[tuple[str, int], dict[str, int]] = {}
        self.hits = 0
        self.misses = 0

    async def direct_upstream(self, job: str, build: int, lookup: DirectUpstreamLookup) -> dict[str, int]:
        key = (job, build)
        if key in self._direct:
            self.hits += 1
            return dict(self._direct[key])
        self.misses += 1
        result = await lookup(job, build)
        self._direct[key] = dict(result)
        return result

    async def last_completed_build(self, job: str, lookup: LastCompletedBuildLookup) -> int | None:
        if job in self._last_completed:
            self.hits += 1
            return self._last_completed[job]
        self.misses += 1
        number = await lookup(job)
        self._last_completed[job] = number
        return number

    def get_transitive(self, job: str, build: int) -> dict[str, int] | None:
        cached = self._transitive.get((job, build))
        if cached is None:
            return None
        self.hits += 1
        return dict(cached)

    def put_transitive(self, job: str, build: int, result: dict[str, int]) -> None:
        self._transitive[(job, build)] = dict(result)

    def clear(self) -> None:
        self._direct.clear()
        self._last_completed.clear()
        self._transitive.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._direct)

    def __repr__(self) -> str:
        return (
            f"UpstreamMemory(size={len(self._direct)}, transitive={len(self._transitive)}, "
            f"hits={self.hits}, misses={self.misses})"
        )


class UpstreamWalker:
    """Computes the full ancestor set of a build."""

    def __init__(
        self,
        direct_upstream: DirectUpstreamLookup,
        last_completed_build: LastCompletedBuildLookup,
    ):
        self._direct_upstream = direct_upstream
        self._last_completed_build = last_completed_build

    async def _direct(self, job: str, build: int, memory: UpstreamMemory | None) -> dict[str, int]:
        if memory is None:
            return await self._direct_upstream(job, build)
        return await memory.direct_upstream(job, build, self._direct_upstream)

    async def _representative(self, job: str, discovered: int, memory: UpstreamMemory | None) -> int:
        if memory is None:
            last_completed = await self._last_completed_build(job)
        else:
            last_completed = await memory.last_completed_build(job, self._last_completed_build)
        return representative_build_number(last_completed, discovered)

    async def walk(self, job: str, build: int, memory: UpstreamMemory | None = None) -> dict[str, int]:
        """Return ``{upstream job full name: build number}``.

        Breadth-first: the first discovery of a job fixes its build number and
        the job is expanded once. The seed job is not pre-visited, so it shows
        up in its own result when a cycle leads back to it.
        """
        if memory is not None:
            cached = memory.get_transitive(job, build)
            if cached is not None:
                return cached

        visited: dict[str, int] = {}
        queue: deque[str] = deque()

        for up_job, up_build in sorted((await self._direct(job, build, memory)).items()):
            visited[up_job] = up_build
            queue.append(up_job)

        while queue:
            current = queue.popleft()
            number = await self._representative(current, visited[current], memory)
            for up_job, up_build in sorted((await self._direct(current, number, memory)).items()):
                if up_job in visited:
                    continue
                visited[up_job] = up_build
                queue.append(up_job)

        logger.debug(f"Transitive upstream of {job}#{build}: {len(visited)} jobs")

        if memory is not None:
            memory.put_transitive(job, build, visited)
        return visited
