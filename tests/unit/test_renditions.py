"""
Tests for the rendition spec table and settings
"""
import pytest

from api.config import FailurePolicy, Settings
from api.utils.error_handlers import ValidationError
from worker.renditions import DEFAULT_RENDITIONS, RenditionSpec, load_rendition_table


class TestRenditionSpec:

    @pytest.mark.unit
    def test_derived_fields(self, sample_spec):
        assert sample_spec.resolution == "1280x720"
        assert sample_spec.bandwidth == 2_500_000
        assert sample_spec.playlist_name == "720p.m3u8"

    @pytest.mark.unit
    def test_spec_is_immutable(self, sample_spec):
        with pytest.raises(Exception):
            sample_spec.bitrate_kbps = 1

    @pytest.mark.unit
    @pytest.mark.parametrize("label", ["", "../etc", "a/b", "720p.m3u8", " 720p"])
    def test_rejects_unsafe_labels(self, label):
        with pytest.raises(ValueError):
            RenditionSpec(label=label, width=1280, height=720, bitrate_kbps=2500)

    @pytest.mark.unit
    def test_rejects_non_positive_bitrate(self):
        with pytest.raises(ValueError):
            RenditionSpec(label="720p", width=1280, height=720, bitrate_kbps=0)

    @pytest.mark.unit
    def test_default_ladder(self):
        assert [(s.label, s.resolution, s.bitrate_kbps) for s in DEFAULT_RENDITIONS] == [
            ("360p", "640x360", 800),
            ("720p", "1280x720", 2500),
            ("1080p", "1920x1080", 5000),
        ]


class TestLoadRenditionTable:

    @pytest.mark.unit
    def test_preserves_order(self):
        table = load_rendition_table([
            {"label": "1080p", "width": 1920, "height": 1080, "bitrate_kbps": 5000},
            {"label": "360p", "width": 640, "height": 360, "bitrate_kbps": 800},
        ])
        assert [s.label for s in table] == ["1080p", "360p"]

    @pytest.mark.unit
    def test_empty_table_is_allowed(self):
        assert load_rendition_table([]) == []

    @pytest.mark.unit
    def test_duplicate_labels_rejected(self, sample_spec):
        with pytest.raises(ValidationError, match="Duplicate rendition label"):
            load_rendition_table([sample_spec, sample_spec])

    @pytest.mark.unit
    def test_invalid_entry_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            load_rendition_table([{"label": "720p", "width": 1280}])
        assert exc_info.value.field == "renditions"


class TestSettings:

    @pytest.mark.unit
    def test_defaults(self):
        settings = Settings()
        assert settings.SEGMENT_DURATION == 10
        assert settings.FAILURE_POLICY is FailurePolicy.BEST_EFFORT
        assert [s.label for s in settings.rendition_table()] == ["360p", "720p", "1080p"]

    @pytest.mark.unit
    def test_renditions_from_environment(self, monkeypatch):
        monkeypatch.setenv(
            "RENDITIONS",
            '[{"label": "240p", "width": 426, "height": 240, "bitrate_kbps": 400}]',
        )
        monkeypatch.setenv("FAILURE_POLICY", "all_or_nothing")
        settings = Settings()
        assert [s.label for s in settings.rendition_table()] == ["240p"]
        assert settings.FAILURE_POLICY is FailurePolicy.ALL_OR_NOTHING

    @pytest.mark.unit
    def test_duplicate_labels_in_settings_rejected(self):
        spec = {"label": "720p", "width": 1280, "height": 720, "bitrate_kbps": 2500}
        with pytest.raises(ValueError):
            Settings(RENDITIONS=[spec, spec])
