import pytest

from conftest import pcm
from livescribe.audio.pipeline import SegmentationPipeline
from livescribe.audio.types import CutReason
from livescribe.config import PipelineConfig

STEP_MS = 100


def run(script, config):
    """Feed (duration_ms, amplitude) segments in 100 ms buffers, then stop."""
    sent, dropped = [], []
    pipeline = SegmentationPipeline(config, sent.append, on_discard=dropped.append)
    pipeline.start(0.0)
    elapsed = 0
    for duration_ms, amplitude in script:
        for _ in range(duration_ms // STEP_MS):
            elapsed += STEP_MS
            pipeline.feed(pcm(STEP_MS, amplitude=amplitude), elapsed / 1000)
    pipeline.flush(elapsed / 1000)
    return pipeline, sent, dropped


def test_continuous_speech_is_cut_by_max_duration_timer():
    config = PipelineConfig(max_chunk_ms=5000, silence_window_ms=1500)
    pipeline, sent, _ = run([(10_000, 12000)], config)
    assert len(sent) == 2
    assert [c.reason for c in sent] == [CutReason.TIMER, CutReason.TIMER]
    for chunk in sent:
        assert chunk.duration == pytest.approx(5.0, abs=0.11)
        assert chunk.size == 160_000
    assert pipeline.scheduler.stats.flushes == 1


def test_silence_boundary_splits_two_utterances():
    config = PipelineConfig(max_chunk_ms=25_000, silence_window_ms=1500)
    _, sent, dropped = run([(1000, 12000), (3000, 0), (1000, 12000)], config)
    assert len(sent) == 2
    first, second = sent
    assert first.reason is CutReason.SILENCE
    assert first.ended_at == pytest.approx(2.5)
    assert first.voiced_ms == 1000
    assert second.reason is CutReason.FLUSH
    assert second.voiced_ms == 1000
    assert first.sequence_id < second.sequence_id
    assert dropped == []


def test_short_burst_is_never_dispatched():
    config = PipelineConfig(max_chunk_ms=5000, silence_window_ms=1500, min_speech_ms=400)
    _, sent, dropped = run([(200, 12000), (3000, 0)], config)
    assert sent == []
    assert dropped and dropped[0].voiced_ms == 200


def test_timer_cut_suppresses_trailing_silence_boundary():
    config = PipelineConfig(max_chunk_ms=5000, silence_window_ms=1500)
    _, sent, dropped = run([(4800, 12000), (3000, 0)], config)
    assert [c.reason for c in sent] == [CutReason.TIMER]
    assert all(c.reason is not CutReason.SILENCE for c in dropped)


def test_stop_mid_utterance_flushes_remaining_audio():
    config = PipelineConfig(max_chunk_ms=25_000)
    _, sent, _ = run([(2000, 12000)], config)
    assert len(sent) == 1
    assert sent[0].reason is CutReason.FLUSH
    assert sent[0].duration == pytest.approx(2.0)


def test_flush_runs_once_and_closes_pipeline():
    sent = []
    pipeline = SegmentationPipeline(PipelineConfig(), sent.append)
    pipeline.start(0.0)
    pipeline.flush(0.0)
    pipeline.flush(0.1)
    pipeline.feed(pcm(100), 0.2)
    assert pipeline.scheduler.stats.flushes == 1
    assert pipeline.scheduler.stats.captured_bytes == 0
    assert sent == []


def test_speech_starting_at_the_deadline_is_not_cut_off():
    config = PipelineConfig(max_chunk_ms=5000, silence_window_ms=1500)
    _, sent, dropped = run([(4900, 0), (2000, 12000)], config)
    assert dropped == []
    assert len(sent) == 1
    assert sent[0].reason is CutReason.FLUSH
    assert sent[0].voiced_ms == 2000


def test_timer_still_cuts_long_silence():
    config = PipelineConfig(max_chunk_ms=5000, silence_window_ms=1500)
    _, sent, dropped = run([(6000, 0)], config)
    assert sent == []
    assert [c.reason for c in dropped] == [CutReason.TIMER, CutReason.FLUSH]
