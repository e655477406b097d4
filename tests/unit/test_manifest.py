"""
Tests for master manifest assembly
"""
import pytest

from api.utils.error_handlers import StorageError
from worker.jobs import ManifestEntry
from worker.manifest import assemble_master_manifest, render_master_manifest

EXPECTED_LADDER = """\
#EXTM3U
#EXT-X-VERSION:3
#EXT-X-STREAM-INF:BANDWIDTH=800000,RESOLUTION=640x360
360p.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=2500000,RESOLUTION=1280x720
720p.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=5000000,RESOLUTION=1920x1080
1080p.m3u8
"""


def _entries(specs):
    return [
        ManifestEntry(label=s.label, bandwidth=s.bandwidth, resolution=s.resolution, uri=s.playlist_name)
        for s in specs
    ]


class TestRenderMasterManifest:

    @pytest.mark.unit
    def test_standard_ladder(self, renditions):
        assert render_master_manifest(_entries(renditions)) == EXPECTED_LADDER

    @pytest.mark.unit
    def test_keeps_caller_order(self, renditions):
        text = render_master_manifest(_entries(reversed(renditions)))
        uris = [line for line in text.splitlines() if not line.startswith("#")]
        assert uris == ["1080p.m3u8", "720p.m3u8", "360p.m3u8"]

    @pytest.mark.unit
    def test_zero_entries_is_header_only(self):
        assert render_master_manifest([]) == "#EXTM3U\n#EXT-X-VERSION:3\n"


class TestAssembleMasterManifest:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_writes_master_playlist(self, tmp_path, renditions):
        path = await assemble_master_manifest(tmp_path, _entries(renditions))
        assert path == tmp_path / "master.m3u8"
        assert path.read_text() == EXPECTED_LADDER

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_overwrites_existing_file(self, tmp_path, renditions):
        (tmp_path / "master.m3u8").write_text("stale")
        path = await assemble_master_manifest(tmp_path, _entries(renditions[:1]))
        assert path.read_text().splitlines()[-1] == "360p.m3u8"
        assert "stale" not in path.read_text()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_directory_raises_storage_error(self, tmp_path, renditions):
        with pytest.raises(StorageError):
            await assemble_master_manifest(tmp_path / "missing", _entries(renditions))
