from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, List, Optional, Set

from canvas_studio.app.errors import JobFailedError, TrackerClosedError, TransportError
from canvas_studio.jobs.schemas import GeneratedImage, GenerationRequest, JobStatus

if TYPE_CHECKING:
    from canvas_studio.clients.protocols import GenerationGateway

logger = logging.getLogger(__name__)

OnDone = Callable[["JobHandle"], None]

_ACTIVE = ("submitted", "polling")
_TERMINAL = ("completed", "failed")


class JobHandle:
    """
    Caller-side view of one generation job.
    `status` moves submitted -> polling -> completed | failed, or to
    cancelled when the owner cancels it first. on_done fires once per terminal
    state and never for a cancelled handle.
    """

    def __init__(self, job_id: Optional[str], request: GenerationRequest, on_done: Optional[OnDone] = None):
        self.job_id = job_id
        self.request = request
        self.status: JobStatus = "submitted"
        self.results: List[GeneratedImage] = []
        self.reason: Optional[str] = None
        self.polls = 0
        self._on_done = on_done
        self._task: Optional[asyncio.Task] = None
        self._settled = asyncio.Event()

    @property
    def active(self) -> bool:
        return self.status in _ACTIVE

    @property
    def terminal(self) -> bool:
        return self.status in _TERMINAL

    async def wait(self) -> "JobHandle":
        """Wait until the handle is completed, failed or cancelled."""
        await self._settled.wait()
        return self

    def result(self) -> List[GeneratedImage]:
        if self.status == "completed":
            return list(self.results)
        raise JobFailedError(f"Job {self.job_id} is {self.status}", reason=self.reason)

    def __repr__(self) -> str:
        return f"JobHandle(job_id={self.job_id!r}, status={self.status!r})"


class JobTracker:
    """
    Tracks generation jobs by polling the generation collaborator.

    One asyncio task per handle: sleep, fetch once, act. The fetch is awaited
    before the next sleep, so a handle never has two fetches in flight. The
    task exits on the tick that observes a terminal state or an error, and
    its finally block always releases the handle. aclose() (or leaving
    `async with`) cancels everything still polling.
    """

    def __init__(
        self,
        gateway: "GenerationGateway",
        *,
        poll_interval_s: float = 1.0,
        max_polls: Optional[int] = None,
    ):
        self.gateway = gateway
        self.poll_interval_s = poll_interval_s
        self.max_polls = max_polls
        self._active: Set[JobHandle] = set()
        self._closed = False

    @property
    def active_handles(self) -> List[JobHandle]:
        return list(self._active)

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "JobTracker":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    # ---------- Submission ----------
    async def submit(self, request: GenerationRequest, on_done: Optional[OnDone] = None) -> JobHandle:
        if self._closed:
            raise TrackerClosedError("JobTracker is closed")

        try:
            job_id = await self.gateway.submit(request)
        except TransportError as e:
            logger.warning("generation submit failed: %s", e, extra={"status": "failed", "reason": "transport"})
            handle = JobHandle(None, request, on_done)
            self._settle(handle, "failed", reason="transport")
            return handle

        handle = JobHandle(job_id, request, on_done)
        if self._closed:
            # torn down while the submit was in flight
            self._settle(handle, "cancelled")
            return handle

        self._active.add(handle)
        handle._task = asyncio.create_task(self._poll(handle), name=f"poll-job-{job_id}")
        logger.info("generation job submitted", extra={"job_id": job_id, "status": handle.status})
        return handle

    # ---------- Cancellation ----------
    def cancel(self, handle: JobHandle) -> None:
        """Stop polling with no further callbacks. Idempotent."""
        if not handle.active:
            return
        self._settle(handle, "cancelled")
        self._active.discard(handle)
        if handle._task is not None and not handle._task.done():
            handle._task.cancel()
        logger.info("generation job cancelled", extra={"job_id": handle.job_id, "status": handle.status})

    async def aclose(self) -> None:
        """Teardown: cancel every active handle and wait for its task to exit."""
        self._closed = True
        handles = list(self._active)
        for handle in handles:
            self.cancel(handle)
        tasks = [h._task for h in handles if h._task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # -------------------------
    # internal
    # -------------------------
    async def _poll(self, handle: JobHandle) -> None:
        try:
            while handle.active:
                await asyncio.sleep(self.poll_interval_s)
                if not handle.active:
                    break

                handle.polls += 1
                try:
                    reply = await self.gateway.get_job(handle.job_id)
                except TransportError as e:
                    logger.warning("job poll failed: %s", e, extra={"job_id": handle.job_id, "reason": "transport"})
                    self._settle(handle, "failed", reason="transport")
                    break
                except Exception:
                    logger.exception("job poll raised unexpectedly", extra={"job_id": handle.job_id})
                    self._settle(handle, "failed", reason="transport")
                    break

                if not handle.active:
                    # cancelled while the fetch was outstanding
                    break
                if reply.status == "completed":
                    self._settle(handle, "completed", results=reply.result or [])
                    break
                if reply.status == "failed":
                    self._settle(handle, "failed", reason=reply.reason or "failed")
                    break

                handle.status = "polling"
                if self.max_polls is not None and handle.polls >= self.max_polls:
                    self._settle(handle, "failed", reason="timeout")
                    break
        finally:
            self._active.discard(handle)

    def _settle(
        self,
        handle: JobHandle,
        status: JobStatus,
        *,
        results: Optional[List[GeneratedImage]] = None,
        reason: Optional[str] = None,
    ) -> None:
        if not handle.active:
            return
        handle.status = status
        handle.results = list(results or [])
        handle.reason = reason
        handle._settled.set()

        if status == "cancelled":
            return
        logger.info(
            "generation job %s", status,
            extra={"job_id": handle.job_id, "status": status, "reason": reason},
        )
        if handle._on_done is None:
            return
        try:
            handle._on_done(handle)
        except Exception:
            logger.exception("job on_done callback raised", extra={"job_id": handle.job_id})
