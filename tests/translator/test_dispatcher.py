"""Tests for batched concurrent dispatch of translation chunks."""

import asyncio
from typing import List

import pytest

from translator.dispatcher import BatchDispatcher, make_batches
from translator.schemas import TranslationChunk, TranslationResult


def make_chunks(count: int) -> List[TranslationChunk]:
    return [TranslationChunk(index=i, source_text=f"<p>{i}</p>") for i in range(count)]


class RecordingTranslator:
    """Translate-chunk double that logs start/end events and tracks concurrency."""

    def __init__(self, events: list, delays=None, failures=None):
        self.events = events
        self.delays = delays or {}
        self.failures = failures or {}
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, chunk: TranslationChunk) -> TranslationResult:
        self.events.append(("start", chunk.index))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(chunk.index, 0))
            if chunk.index in self.failures:
                raise self.failures[chunk.index]
            return TranslationResult(index=chunk.index, translated_text=f"T{chunk.index}")
        finally:
            self.in_flight -= 1
            self.events.append(("end", chunk.index))


class TestMakeBatches:
    @pytest.mark.parametrize(
        "count,batch_size,expected_sizes",
        [(0, 3, []), (1, 3, [1]), (3, 3, [3]), (4, 3, [3, 1]), (7, 3, [3, 3, 1]), (5, 1, [1] * 5)],
    )
    def test_batch_sizes(self, count, batch_size, expected_sizes):
        batches = make_batches(make_chunks(count), batch_size)

        assert [len(batch) for batch in batches] == expected_sizes

    def test_batches_keep_chunk_order(self):
        batches = make_batches(make_chunks(5), 2)

        assert [[chunk.index for chunk in batch] for batch in batches] == [[0, 1], [2, 3], [4]]

    def test_rejects_non_positive_batch_size(self):
        with pytest.raises(ValueError):
            make_batches(make_chunks(2), 0)


class TestBatchDispatcherInit:
    @pytest.mark.parametrize("batch_size,batch_delay", [(0, 1.0), (-1, 1.0), (3, -0.5)])
    def test_rejects_invalid_configuration(self, batch_size, batch_delay):
        with pytest.raises(ValueError):
            BatchDispatcher(batch_size=batch_size, batch_delay=batch_delay)


@pytest.mark.asyncio
class TestBatchDispatcherDispatch:
    """Test BatchDispatcher.dispatch."""

    async def test_returns_results_in_index_order_despite_delay_inversion(self, recording_sleep):
        events = []
        # Later chunks finish first
        translator = RecordingTranslator(events, delays={0: 0.03, 1: 0.02, 2: 0.0})
        dispatcher = BatchDispatcher(batch_size=3, batch_delay=1.0, sleep=recording_sleep)

        results = await dispatcher.dispatch(make_chunks(3), translator)

        assert [result.index for result in results] == [0, 1, 2]
        assert [result.translated_text for result in results] == ["T0", "T1", "T2"]
        assert [e for e in events if e[0] == "end"] == [("end", 2), ("end", 1), ("end", 0)]

    async def test_calls_within_a_batch_run_concurrently(self, recording_sleep):
        translator = RecordingTranslator([], delays={i: 0.01 for i in range(7)})
        dispatcher = BatchDispatcher(batch_size=3, batch_delay=0.5, sleep=recording_sleep)

        await dispatcher.dispatch(make_chunks(7), translator)

        assert translator.max_in_flight == 3

    async def test_next_batch_starts_after_previous_batch_and_delay(self):
        events = []

        async def sleep(delay):
            events.append(("sleep", delay))

        translator = RecordingTranslator(events, delays={0: 0.02, 1: 0.0, 2: 0.01})
        dispatcher = BatchDispatcher(batch_size=3, batch_delay=1.0, sleep=sleep)

        await dispatcher.dispatch(make_chunks(4), translator)

        sleep_position = events.index(("sleep", 1.0))
        first_batch = events[:sleep_position]
        assert sorted(first_batch) == sorted(
            [("start", i) for i in range(3)] + [("end", i) for i in range(3)]
        )
        assert events[sleep_position + 1 :] == [("start", 3), ("end", 3)]

    @pytest.mark.parametrize(
        "count,expected_sleeps",
        [(1, []), (3, []), (4, [1.0]), (7, [1.0, 1.0]), (9, [1.0, 1.0])],
    )
    async def test_delay_only_between_batches(self, recording_sleep, count, expected_sleeps):
        dispatcher = BatchDispatcher(batch_size=3, batch_delay=1.0, sleep=recording_sleep)

        await dispatcher.dispatch(make_chunks(count), RecordingTranslator([]))

        assert recording_sleep.delays == expected_sleeps

    async def test_zero_delay_skips_sleep(self, recording_sleep):
        dispatcher = BatchDispatcher(batch_size=1, batch_delay=0, sleep=recording_sleep)

        await dispatcher.dispatch(make_chunks(3), RecordingTranslator([]))

        assert recording_sleep.delays == []

    async def test_empty_chunk_list(self, recording_sleep):
        dispatcher = BatchDispatcher(sleep=recording_sleep)

        assert await dispatcher.dispatch([], RecordingTranslator([])) == []
        assert recording_sleep.delays == []

    async def test_on_batch_complete_receives_sorted_batch_results(self, recording_sleep):
        batches = []
        translator = RecordingTranslator([], delays={0: 0.02, 1: 0.01})
        dispatcher = BatchDispatcher(batch_size=2, batch_delay=1.0, sleep=recording_sleep)

        await dispatcher.dispatch(
            make_chunks(3),
            translator,
            on_batch_complete=lambda results: batches.append([r.index for r in results]),
        )

        assert batches == [[0, 1], [2]]

    async def test_failure_stops_later_batches(self, recording_sleep):
        events = []
        translator = RecordingTranslator(events, failures={4: RuntimeError("chunk 4 failed")})
        completed_batches = []
        dispatcher = BatchDispatcher(batch_size=3, batch_delay=1.0, sleep=recording_sleep)

        with pytest.raises(RuntimeError, match="chunk 4 failed"):
            await dispatcher.dispatch(
                make_chunks(9),
                translator,
                on_batch_complete=lambda results: completed_batches.append(results),
            )

        started = {index for kind, index in events if kind == "start"}
        assert started == {0, 1, 2, 3, 4, 5}
        assert len(completed_batches) == 1
        assert recording_sleep.delays == [1.0]

    async def test_failing_batch_settles_before_raising(self, recording_sleep):
        events = []
        translator = RecordingTranslator(
            events, delays={1: 0.02}, failures={0: RuntimeError("first")}
        )
        dispatcher = BatchDispatcher(batch_size=3, sleep=recording_sleep)

        with pytest.raises(RuntimeError):
            await dispatcher.dispatch(make_chunks(3), translator)

        assert ("end", 1) in events
        assert translator.in_flight == 0

    async def test_first_failure_in_index_order_is_raised(self, recording_sleep):
        translator = RecordingTranslator(
            [],
            delays={0: 0.02, 2: 0.0},
            failures={0: ValueError("chunk 0"), 2: KeyError("chunk 2")},
        )
        dispatcher = BatchDispatcher(batch_size=3, sleep=recording_sleep)

        with pytest.raises(ValueError, match="chunk 0"):
            await dispatcher.dispatch(make_chunks(3), translator)

    async def test_mismatched_result_index_is_rejected(self, recording_sleep):
        async def wrong_index(chunk):
            return TranslationResult(index=chunk.index + 1, translated_text="x")

        dispatcher = BatchDispatcher(batch_size=2, sleep=recording_sleep)

        with pytest.raises(ValueError, match="does not match"):
            await dispatcher.dispatch(make_chunks(2), wrong_index)
