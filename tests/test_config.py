"""Tests for configuration loading and clamping."""

import pytest

from cuesense.config import EngineConfig, GestureConfig, SpectralConfig


class TestSpectralConfig:
    def test_defaults(self):
        cfg = SpectralConfig()
        assert cfg.sensitivity == 1.0
        assert cfg.smoothing == 0.85
        assert cfg.beat_threshold == 1.3
        assert cfg.beat_min_interval == 0.2

    @pytest.mark.parametrize("value,expected", [(0.0, 0.1), (5.0, 3.0), (1.5, 1.5)])
    def test_sensitivity_clamped(self, value, expected):
        assert SpectralConfig(sensitivity=value).sensitivity == expected

    @pytest.mark.parametrize("value,expected", [(0.0, 0.1), (1.0, 0.95), (0.5, 0.5)])
    def test_smoothing_clamped(self, value, expected):
        assert SpectralConfig(smoothing=value).smoothing == expected

    def test_ranges_become_tuples(self):
        cfg = SpectralConfig(bass_range=[30, 200])
        assert cfg.bass_range == (30, 200)

    def test_history_at_least_one(self):
        assert SpectralConfig(beat_history=0).beat_history == 1


class TestGestureConfig:
    def test_defaults(self):
        cfg = GestureConfig()
        assert cfg.swipe_velocity == 0.05
        assert cfg.swipe_cooldown == 0.5
        assert cfg.open_palm_min_fingers == 4
        assert cfg.reset_cooldown == 0.0

    def test_clamps(self):
        cfg = GestureConfig(open_palm_min_fingers=9, swipe_axis_ratio=0.5, swipe_cooldown=-1)
        assert cfg.open_palm_min_fingers == 5
        assert cfg.swipe_axis_ratio == 1.0
        assert cfg.swipe_cooldown == 0.0


class TestEngineConfig:
    def test_from_dict_ignores_unknown(self):
        cfg = EngineConfig.from_dict({
            "spectral": {"sensitivity": 2.0, "colour": "red"},
            "gestures": {"swipe_cooldown": 0.25},
            "profiling": False,
        })
        assert cfg.spectral.sensitivity == 2.0
        assert cfg.gestures.swipe_cooldown == 0.25
        assert cfg.profiling is False

    def test_empty_sections(self):
        cfg = EngineConfig.from_dict({"spectral": None})
        assert cfg.spectral == SpectralConfig()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "cuesense.yaml"
        path.write_text(
            "spectral:\n"
            "  smoothing: 2.0\n"
            "  treble_range: [5000, 16000]\n"
            "gestures:\n"
            "  swipe_velocity: 0.08\n"
        )
        cfg = EngineConfig.from_yaml(path)
        assert cfg.spectral.smoothing == 0.95
        assert cfg.spectral.treble_range == (5000, 16000)
        assert cfg.gestures.swipe_velocity == 0.08

    def test_empty_yaml_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert EngineConfig.from_yaml(path) == EngineConfig()

    def test_yaml_round_trip(self, tmp_path):
        cfg = EngineConfig(spectral=SpectralConfig(sensitivity=1.7))
        path = tmp_path / "nested" / "out.yaml"
        text = cfg.to_yaml(path)
        assert "sensitivity: 1.7" in text
        assert EngineConfig.from_yaml(path) == cfg
