"""Tests for the per-stage profiler."""

import time

from cuesense.profiler import PipelineProfiler


class TestPipelineProfiler:
    def test_stage_timing(self):
        profiler = PipelineProfiler()
        with profiler.stage("band_analysis"):
            time.sleep(0.001)

        stats = profiler.get_stage_stats("band_analysis")
        assert stats is not None
        assert stats.call_count == 1
        assert stats.avg_ms >= 0.5  # at least ~1ms

    def test_unknown_stage_created_on_use(self):
        profiler = PipelineProfiler()
        for _ in range(10):
            with profiler.stage("render"):
                pass
        assert profiler.get_stage_stats("render").call_count == 10

    def test_timing_recorded_when_block_raises(self):
        profiler = PipelineProfiler()
        try:
            with profiler.stage("dispatch"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert profiler.get_stage_stats("dispatch").call_count == 1

    def test_summary_only_lists_used_stages(self):
        profiler = PipelineProfiler()
        with profiler.stage("preprocess"):
            pass
        with profiler.stage("classification"):
            pass

        summary = profiler.summary()
        assert set(summary) == {"preprocess", "classification"}
        assert "p95_ms" in summary["preprocess"]

    def test_disabled(self):
        profiler = PipelineProfiler()
        profiler.enabled = False
        with profiler.stage("onset_detection"):
            pass
        assert profiler.get_stage_stats("onset_detection") is None

    def test_reset(self):
        profiler = PipelineProfiler()
        with profiler.stage("band_analysis"):
            pass
        profiler.reset()
        assert profiler.get_stage_stats("band_analysis") is None
        assert profiler.summary() == {}

    def test_over_budget(self):
        profiler = PipelineProfiler(budget_ms=0.5)
        with profiler.stage("classification"):
            time.sleep(0.002)
        with profiler.stage("dispatch"):
            pass
        assert profiler.over_budget() == ["classification"]
