"""JobTracker: polling lifecycle, terminal-once delivery, cancellation.

Invariants:
    - on_done fires exactly once per terminal state, never for a cancelled handle
    - polling stops on the tick that observes completed/failed/error
    - no poll is issued after cancel() or aclose()
    - at most one status fetch in flight per handle
    - a submit transport failure yields an immediate failed handle, no polling

Design Decisions:
    - poll_interval_s=0 keeps ticks to one event-loop turn; settle() gives the
      loop enough turns for any stray tick to show up
"""

import asyncio

import pytest

from canvas_studio.app.errors import JobFailedError, TrackerClosedError, TransportError
from canvas_studio.jobs.schemas import GeneratedImage, GenerationRequest
from canvas_studio.jobs.tracker import JobTracker

from tests.fakes import FakeGenerationGateway, completed, failed, processing


# -- Helpers -------------------------------------------------------------------

REQUEST = GenerationRequest(prompt="a red fox", width=768, height=1024, batch=4, model="star3")


async def settle(turns=20):
    for _ in range(turns):
        await asyncio.sleep(0)


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, handle):
        self.calls.append((handle.status, list(handle.results), handle.reason))


# ==============================================================================
# Happy path
# ==============================================================================


async def test_processing_then_completed_delivers_once_and_stops():
    gw = FakeGenerationGateway([processing(), completed("x")], job_id="7")
    done = Recorder()
    tracker = JobTracker(gw, poll_interval_s=0)

    handle = await tracker.submit(REQUEST, on_done=done)
    assert handle.job_id == "7"
    assert handle.status == "submitted"

    await handle.wait()
    await settle()

    assert handle.status == "completed"
    assert handle.result() == [GeneratedImage(url="x")]
    assert done.calls == [("completed", [GeneratedImage(url="x")], None)]
    assert gw.polls == 2
    assert tracker.active_handles == []


async def test_first_processing_tick_moves_handle_to_polling():
    gw = FakeGenerationGateway([processing()], delay_s=0)
    tracker = JobTracker(gw, poll_interval_s=0)
    handle = await tracker.submit(REQUEST)

    while gw.polls < 1:
        await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert handle.status == "polling"
    await tracker.aclose()


async def test_request_is_forwarded_to_gateway():
    gw = FakeGenerationGateway([completed()])
    async with JobTracker(gw, poll_interval_s=0) as tracker:
        handle = await tracker.submit(REQUEST)
        await handle.wait()
    assert gw.submitted == [REQUEST]
    assert handle.results == []


# ==============================================================================
# Failures
# ==============================================================================


async def test_collaborator_failure_is_terminal():
    gw = FakeGenerationGateway([processing(), failed("nsfw filter")])
    done = Recorder()
    tracker = JobTracker(gw, poll_interval_s=0)

    handle = await tracker.submit(REQUEST, on_done=done)
    await handle.wait()
    await settle()

    assert handle.status == "failed"
    assert handle.reason == "nsfw filter"
    assert done.calls == [("failed", [], "nsfw filter")]
    assert gw.polls == 2
    with pytest.raises(JobFailedError) as exc:
        handle.result()
    assert exc.value.reason == "nsfw filter"


async def test_failure_without_reason_defaults():
    gw = FakeGenerationGateway([failed()])
    tracker = JobTracker(gw, poll_interval_s=0)
    handle = await (await tracker.submit(REQUEST)).wait()
    assert handle.reason == "failed"


async def test_poll_transport_error_fails_with_transport_reason():
    gw = FakeGenerationGateway([processing(), TransportError("boom", status_code=502), completed("late")])
    done = Recorder()
    tracker = JobTracker(gw, poll_interval_s=0)

    handle = await tracker.submit(REQUEST, on_done=done)
    await handle.wait()
    await settle()

    assert handle.status == "failed"
    assert handle.reason == "transport"
    assert len(done.calls) == 1
    assert gw.polls == 2


async def test_unexpected_poll_exception_still_releases_handle():
    gw = FakeGenerationGateway([RuntimeError("bug")])
    tracker = JobTracker(gw, poll_interval_s=0)
    handle = await tracker.submit(REQUEST)
    await handle.wait()
    await settle()
    assert handle.reason == "transport"
    assert tracker.active_handles == []


async def test_submit_transport_error_returns_failed_without_polling():
    gw = FakeGenerationGateway(submit_error=TransportError("refused"))
    done = Recorder()
    tracker = JobTracker(gw, poll_interval_s=0)

    handle = await tracker.submit(REQUEST, on_done=done)
    await settle()

    assert handle.status == "failed"
    assert handle.reason == "transport"
    assert handle.job_id is None
    assert done.calls == [("failed", [], "transport")]
    assert gw.polls == 0
    assert tracker.active_handles == []


async def test_poll_budget_exhaustion_times_out():
    gw = FakeGenerationGateway()
    tracker = JobTracker(gw, poll_interval_s=0, max_polls=3)
    handle = await tracker.submit(REQUEST)
    await handle.wait()
    await settle()
    assert handle.reason == "timeout"
    assert gw.polls == 3


async def test_callback_exception_does_not_break_tracker():
    def explode(handle):
        raise ValueError("ui bug")

    gw = FakeGenerationGateway([completed("x")])
    tracker = JobTracker(gw, poll_interval_s=0)
    handle = await tracker.submit(REQUEST, on_done=explode)
    await handle.wait()
    await settle()
    assert handle.status == "completed"
    assert tracker.active_handles == []


# ==============================================================================
# Cancellation & teardown
# ==============================================================================


async def test_cancel_stops_polling_without_callback():
    gw = FakeGenerationGateway()
    done = Recorder()
    tracker = JobTracker(gw, poll_interval_s=0)
    handle = await tracker.submit(REQUEST, on_done=done)

    while gw.polls < 2:
        await asyncio.sleep(0)
    tracker.cancel(handle)
    polls_at_cancel = gw.polls
    await settle(50)

    assert handle.status == "cancelled"
    assert gw.polls == polls_at_cancel
    assert done.calls == []
    assert tracker.active_handles == []


async def test_cancel_is_idempotent():
    gw = FakeGenerationGateway()
    tracker = JobTracker(gw, poll_interval_s=0)
    handle = await tracker.submit(REQUEST)
    tracker.cancel(handle)
    tracker.cancel(handle)
    assert handle.status == "cancelled"
    await handle.wait()


async def test_cancel_after_terminal_is_noop():
    gw = FakeGenerationGateway([completed("x")])
    done = Recorder()
    tracker = JobTracker(gw, poll_interval_s=0)
    handle = await tracker.submit(REQUEST, on_done=done)
    await handle.wait()
    tracker.cancel(handle)
    assert handle.status == "completed"
    assert len(done.calls) == 1


async def test_cancel_during_outstanding_fetch_discards_reply():
    gw = FakeGenerationGateway([completed("x")], delay_s=0.05)
    done = Recorder()
    tracker = JobTracker(gw, poll_interval_s=0)
    handle = await tracker.submit(REQUEST, on_done=done)

    while gw.in_flight == 0:
        await asyncio.sleep(0)
    tracker.cancel(handle)
    await asyncio.sleep(0.1)

    assert handle.status == "cancelled"
    assert done.calls == []


async def test_aclose_cancels_every_active_handle():
    gw = FakeGenerationGateway()
    done = Recorder()
    tracker = JobTracker(gw, poll_interval_s=0)
    handles = [await tracker.submit(REQUEST, on_done=done) for _ in range(3)]
    await settle()

    await tracker.aclose()
    polls_at_close = gw.polls
    await settle(50)

    assert [h.status for h in handles] == ["cancelled"] * 3
    assert all(h._task.done() for h in handles)
    assert gw.polls == polls_at_close
    assert done.calls == []
    with pytest.raises(TrackerClosedError):
        await tracker.submit(REQUEST)


async def test_context_manager_tears_down_on_error():
    gw = FakeGenerationGateway()
    with pytest.raises(RuntimeError):
        async with JobTracker(gw, poll_interval_s=0) as tracker:
            handle = await tracker.submit(REQUEST)
            raise RuntimeError("view crashed")
    assert handle.status == "cancelled"
    assert handle._task.done()


# ==============================================================================
# Concurrency
# ==============================================================================


async def test_never_two_fetches_in_flight_for_one_handle():
    gw = FakeGenerationGateway([processing()] * 5 + [completed("x")], delay_s=0.01)
    done = Recorder()
    tracker = JobTracker(gw, poll_interval_s=0)
    handle = await tracker.submit(REQUEST, on_done=done)
    await handle.wait()
    assert gw.max_in_flight == 1
    assert gw.polls == 6
    assert len(done.calls) == 1


async def test_independent_handles_each_deliver_once():
    gw_a = FakeGenerationGateway([processing(), completed("a")], job_id="1")
    gw_b = FakeGenerationGateway([failed("oom")], job_id="2")
    done = Recorder()
    tracker_a = JobTracker(gw_a, poll_interval_s=0)
    tracker_b = JobTracker(gw_b, poll_interval_s=0)

    a = await tracker_a.submit(REQUEST, on_done=done)
    b = await tracker_b.submit(REQUEST, on_done=done)
    await asyncio.gather(a.wait(), b.wait())
    await settle()

    assert sorted(status for status, _, _ in done.calls) == ["completed", "failed"]
