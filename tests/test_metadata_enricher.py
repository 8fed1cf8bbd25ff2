"""Tests for size formatting and best-effort size enrichment

Run with pytest from project root:
    pytest tests/test_metadata_enricher.py -v
"""

import itertools

import pytest

from asset_processor import format_size
from managers.gallery_state import GalleryState
from managers.metadata_enricher import MetadataEnricher
from models.asset import UNKNOWN_SIZE_INFO, SizeInfo
from tests.conftest import FakeGateway, make_asset


class TestFormatSize:
    """Binary-prefix formatting boundaries"""

    @pytest.mark.parametrize(
        "size_bytes,expected",
        [
            (0, "0 B"),
            (1023, "1023 B"),
            (1024, "1.0 KB"),
            (1536, "1.5 KB"),
            (1048575, "1024.0 KB"),
            (1048576, "1.0 MB"),
            (5 * 1048576 + 104858, "5.1 MB"),
        ],
    )
    def test_boundaries(self, size_bytes, expected):
        assert format_size(size_bytes) == expected


class TestProbe:
    """MetadataEnricher.probe never raises"""

    URL = "https://ipfs.io/ipfs/QmTest/a.png"

    def test_known_size(self):
        enricher = MetadataEnricher(FakeGateway(lengths={self.URL: "2048"}))
        assert enricher.probe(self.URL) == SizeInfo("2.0 KB", 2048)

    def test_missing_header_is_unknown(self):
        enricher = MetadataEnricher(FakeGateway(lengths={}))
        assert enricher.probe(self.URL) == UNKNOWN_SIZE_INFO

    def test_transport_error_is_unknown(self):
        enricher = MetadataEnricher(FakeGateway(failing={self.URL}))
        result = enricher.probe(self.URL)
        assert result.formatted == "Unknown"
        assert result.size_bytes == 0

    def test_garbage_header_is_unknown(self):
        enricher = MetadataEnricher(FakeGateway(lengths={self.URL: "lots"}))
        assert enricher.probe(self.URL) == UNKNOWN_SIZE_INFO


class TestEnrichment:
    """Fan-out enrichment writes back by asset id"""

    def _assets(self):
        return [make_asset("a.png"), make_asset("b.png"), make_asset("c.png")]

    def test_enrich_all_updates_every_asset(self):
        assets = self._assets()
        lengths = {assets[0].source_url: "100", assets[1].source_url: "2048"}
        state = GalleryState()
        state.load(assets)

        delivered = MetadataEnricher(FakeGateway(lengths=lengths), max_workers=3).enrich_all(assets, state.apply_size)

        assert delivered == 3
        assert state.get("id-a.png").formatted_size == "100 B"
        assert state.get("id-b.png").size_bytes == 2048
        assert state.get("id-c.png").formatted_size == "Unknown"
        assert state.get("id-c.png").size_bytes == 0

    def test_completion_order_does_not_matter(self):
        """Keyed writes commute: every permutation yields the same final state"""
        assets = self._assets()
        results = [
            ("id-a.png", SizeInfo("1 B", 1)),
            ("id-b.png", SizeInfo("2.0 KB", 2048)),
            ("id-c.png", UNKNOWN_SIZE_INFO),
        ]

        final_states = set()
        for permutation in itertools.permutations(results):
            state = GalleryState()
            state.load(assets)
            for asset_id, info in permutation:
                state.apply_size(asset_id, info)
            final_states.add(tuple(state.assets()))

        assert len(final_states) == 1

    def test_writes_touch_only_their_asset(self):
        assets = self._assets()
        state = GalleryState()
        state.load(assets)
        state.update("id-b.png", tags=("sky",))

        state.apply_size("id-a.png", SizeInfo("1 B", 1))

        assert state.get("id-b.png").tags == ("sky",)
        assert state.get("id-b.png").size_bytes is None

    def test_write_for_unknown_asset_is_ignored(self):
        state = GalleryState()
        state.load(self._assets())
        assert state.apply_size("gone", SizeInfo("1 B", 1)) is None
        assert len(state.assets()) == 3

    def test_enrich_nothing(self):
        assert MetadataEnricher(FakeGateway()).enrich_all([], lambda *_: None) == 0
