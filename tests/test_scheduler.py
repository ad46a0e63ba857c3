import random

import pytest

from conftest import pcm
from livescribe.audio.pipeline import SegmentationPipeline
from livescribe.audio.scheduler import ChunkScheduler
from livescribe.audio.types import AudioChunk, CutReason
from livescribe.config import PipelineConfig


def make_scheduler(**overrides):
    config = PipelineConfig(**overrides)
    sent, dropped = [], []
    scheduler = ChunkScheduler(config, sent.append, on_discard=dropped.append, generation=3)
    scheduler.start(0.0)
    return scheduler, sent, dropped


def fill(scheduler, count, *, start_ms=0, voiced=True):
    for i in range(count):
        scheduler.append(pcm(100), (start_ms + (i + 1) * 100) / 1000, voiced=voiced)


def test_cut_finalizes_accumulated_buffers():
    scheduler, sent, dropped = make_scheduler()
    fill(scheduler, 10)
    chunk = scheduler.cut(1.0, CutReason.SILENCE)
    assert chunk is sent[0]
    assert chunk.size == 32000
    assert chunk.started_at == pytest.approx(0.0)
    assert chunk.ended_at == pytest.approx(1.0)
    assert chunk.voiced_ms == 1000
    assert chunk.reason is CutReason.SILENCE
    assert chunk.generation == 3
    assert scheduler.pending_bytes == 0
    assert dropped == []


def test_chunk_below_byte_floor_is_discarded():
    scheduler, sent, dropped = make_scheduler(min_chunk_bytes=20000, min_speech_ms=0)
    fill(scheduler, 5)  # 16000 bytes
    assert scheduler.cut(0.5, CutReason.TIMER) is None
    assert sent == []
    assert dropped[0].size == 16000
    assert scheduler.stats.discarded_bytes == 16000


def test_chunk_without_enough_voiced_audio_is_discarded():
    scheduler, sent, dropped = make_scheduler(min_speech_ms=500)
    fill(scheduler, 3, voiced=True)
    fill(scheduler, 20, start_ms=300, voiced=False)
    scheduler.cut(2.3, CutReason.SILENCE)
    assert sent == []
    assert dropped[0].voiced_ms == 300


def test_floor_scales_with_elapsed_time():
    scheduler, sent, dropped = make_scheduler(min_chunk_bytes=0, min_bytes_per_second=16000, min_speech_ms=0)
    assert scheduler.min_bytes_for(5.0) == 80000
    scheduler.append(pcm(100), 0.1, voiced=True)
    scheduler.append(pcm(100), 5.0, voiced=True)  # capture gap in between
    scheduler.cut(5.0, CutReason.TIMER)
    assert sent == []
    assert dropped[0].duration == pytest.approx(5.0)


def test_every_cut_rearms_deadline():
    scheduler, *_ = make_scheduler(max_chunk_ms=5000)
    assert scheduler.deadline == pytest.approx(5.0)
    assert not scheduler.due(4.9)
    assert scheduler.due(5.0)
    scheduler.cut(2.0, CutReason.SILENCE)
    assert scheduler.deadline == pytest.approx(7.0)


def test_flush_on_empty_accumulator_is_a_counted_no_op():
    scheduler, sent, dropped = make_scheduler()
    assert scheduler.flush(1.0) is None
    assert scheduler.stats.flushes == 1
    assert sent == [] and dropped == []
    assert scheduler.deadline is None


def test_sequence_ids_are_monotonic_across_discards():
    scheduler, sent, dropped = make_scheduler()
    fill(scheduler, 10)
    scheduler.cut(1.0, CutReason.SILENCE)
    fill(scheduler, 1, start_ms=1000)
    scheduler.cut(1.1, CutReason.SILENCE)
    fill(scheduler, 10, start_ms=1100)
    scheduler.cut(2.1, CutReason.SILENCE)
    assert [c.sequence_id for c in sent] == [1, 3]
    assert [c.sequence_id for c in dropped] == [2]


def test_chunk_must_end_after_it_starts():
    with pytest.raises(ValueError):
        AudioChunk(sequence_id=1, data=b"x", started_at=2.0, ended_at=2.0, sample_rate=16000)


@pytest.mark.parametrize("seed", [1, 7, 42, 1234])
def test_bytes_are_conserved_for_random_input(seed):
    rng = random.Random(seed)
    config = PipelineConfig(max_chunk_ms=rng.choice([1000, 3000, 5000]), min_speech_ms=rng.choice([0, 400]))
    sent, dropped = [], []
    pipeline = SegmentationPipeline(config, sent.append, on_discard=dropped.append)
    pipeline.start(0.0)
    captured = 0
    now_ms = 0
    for _ in range(rng.randint(50, 300)):
        now_ms += rng.choice([20, 100, 100, 250])
        data = pcm(rng.choice([20, 60, 100]), amplitude=rng.choice([0, 0, 200, 12000]))
        captured += len(data)
        pipeline.feed(data, now_ms / 1000)
    pipeline.flush(now_ms / 1000)

    stats = pipeline.scheduler.stats
    assert stats.captured_bytes == captured
    assert sum(c.size for c in sent) + sum(c.size for c in dropped) == captured
    assert stats.dispatched_bytes + stats.discarded_bytes == captured
    assert all(c.size >= config.min_chunk_bytes for c in sent)
    assert all(c.voiced_ms >= config.min_speech_ms for c in sent)
    ids = [c.sequence_id for c in sorted(sent + dropped, key=lambda c: c.started_at)]
    assert ids == sorted(ids)


def test_sequence_numbering_can_continue_from_earlier_recording():
    sent = []
    scheduler = ChunkScheduler(PipelineConfig(), sent.append, first_sequence=5)
    scheduler.start(0.0)
    fill(scheduler, 10)
    scheduler.cut(1.0, CutReason.SILENCE)
    assert sent[0].sequence_id == 5
    assert scheduler.next_sequence == 6
