"""Tests for the sequential export pipeline

Run with pytest from project root:
    pytest tests/test_export_manager.py -v
"""

import zipfile
from io import BytesIO

import pytest

from errors import ExportError, ExportInProgressError
from managers.export_manager import ExportManager, ZipPackager, archive_filename
from tests.conftest import FakeGateway


class RecordingPackager(ZipPackager):
    def __init__(self):
        super().__init__()
        self.closed = False

    def close(self):
        super().close()
        self.closed = True


def _manager(state, gateway, sleeps=None):
    return ExportManager(
        state,
        gateway,
        delay=0.3,
        sleep=(sleeps.append if sleeps is not None else (lambda _: None)),
    )


class TestExportSequencing:
    """Progress and ordering of a successful export"""

    def test_progress_reports_in_order(self, state):
        state.select_all()
        reports = []
        result = _manager(state, FakeGateway()).export_selected(lambda c, t: reports.append((c, t)))
        assert reports == [(1, 3), (2, 3), (3, 3)]
        assert result.count == 3

    def test_exactly_one_processing_marker_per_step(self, state, assets):
        state.select_all()
        markers = []

        def on_progress(current, total):
            progress = state.progress
            markers.append((progress.processing_id, progress.current, progress.active))

        _manager(state, FakeGateway()).export_selected(on_progress)
        assert markers == [
            (assets[0].asset_id, 1, True),
            (assets[1].asset_id, 2, True),
            (assets[2].asset_id, 3, True),
        ]

    def test_items_are_fetched_strictly_in_sequence(self, state, assets):
        state.select_all()
        gateway = FakeGateway()
        seen_processing = []
        gateway.before_fetch = lambda url: seen_processing.append(state.progress.processing_id)

        _manager(state, gateway).export_selected()

        assert gateway.fetched == [asset.source_url for asset in assets]
        assert seen_processing == [asset.asset_id for asset in assets]

    def test_delay_after_each_item(self, state):
        state.select_all()
        sleeps = []
        _manager(state, FakeGateway(), sleeps).export_selected()
        assert sleeps == [0.3, 0.3, 0.3]

    def test_archive_contains_entries_by_display_name(self, state, assets):
        state.toggle(assets[0].asset_id)
        state.toggle(assets[2].asset_id)
        gateway = FakeGateway(contents={assets[0].source_url: b"AAA", assets[2].source_url: b"CCC"})

        result = _manager(state, gateway).export_selected()

        with zipfile.ZipFile(BytesIO(result.archive)) as zf:
            assert zf.namelist() == ["a.png", "c.gif"]
            assert zf.read("a.png") == b"AAA"
            assert zf.read("c.gif") == b"CCC"
        assert result.filename.startswith("ipfs_collection_")
        assert result.filename.endswith(".zip")

    def test_success_clears_selection_and_markers(self, state):
        state.select_all()
        _manager(state, FakeGateway()).export_selected()
        assert state.selected_ids() == set()
        assert state.progress.active is False
        assert state.progress.processing_id is None
        assert state.progress.total == 0

    def test_snapshot_is_fixed_at_start(self, state, assets):
        state.toggle(assets[0].asset_id)
        state.toggle(assets[1].asset_id)
        gateway = FakeGateway()
        # toggles are ignored while the job runs
        gateway.before_fetch = lambda url: state.toggle(assets[2].asset_id)
        reports = []

        _manager(state, gateway).export_selected(lambda c, t: reports.append((c, t)))

        assert reports == [(1, 2), (2, 2)]
        assert assets[2].source_url not in gateway.fetched


class TestExportFailure:
    """Abort behaviour"""

    def test_failure_aborts_and_preserves_selection(self, state, assets):
        state.select_all()
        gateway = FakeGateway(failing={assets[1].source_url})
        reports = []

        with pytest.raises(ExportError) as exc_info:
            _manager(state, gateway).export_selected(lambda c, t: reports.append((c, t)))

        assert exc_info.value.asset_name == "b.jpg"
        assert "b.jpg" in str(exc_info.value)
        assert reports == [(1, 3)]
        assert assets[2].source_url not in gateway.fetched
        assert state.selected_ids() == {asset.asset_id for asset in assets}
        assert state.progress.processing_id is None
        assert state.progress.active is False

    def test_empty_selection_is_an_error(self, state):
        with pytest.raises(ExportError):
            _manager(state, FakeGateway()).export_selected()
        assert state.export_active is False

    def test_retry_after_failure_succeeds(self, state, assets):
        state.select_all()
        gateway = FakeGateway(failing={assets[0].source_url})
        manager = _manager(state, gateway)
        with pytest.raises(ExportError):
            manager.export_selected()

        gateway.failing.clear()
        result = manager.export_selected()
        assert result.count == 3

    def test_packager_closed_when_export_aborts(self, state, assets):
        state.select_all()
        packagers = []

        def factory():
            packagers.append(RecordingPackager())
            return packagers[-1]

        manager = ExportManager(
            state,
            FakeGateway(failing={assets[1].source_url}),
            delay=0,
            packager_factory=factory,
        )
        with pytest.raises(ExportError):
            manager.export_selected()
        assert len(packagers) == 1
        assert packagers[0].closed is True

    def test_packager_closed_after_success(self, state):
        state.select_all()
        packager = RecordingPackager()
        manager = ExportManager(state, FakeGateway(), delay=0, packager_factory=lambda: packager)
        result = manager.export_selected()
        assert packager.closed is True
        with zipfile.ZipFile(BytesIO(result.archive)) as zf:
            assert len(zf.namelist()) == 3


class TestExportExclusivity:
    """Only one export job at a time"""

    def test_second_export_is_rejected_while_active(self, state):
        state.select_all()
        manager = _manager(state, FakeGateway())
        nested_errors = []

        def on_progress(current, total):
            if current == 1:
                try:
                    manager.export_selected()
                except ExportInProgressError as e:
                    nested_errors.append(e)

        manager.export_selected(on_progress)
        assert len(nested_errors) == 1
        assert manager.is_active is False


class TestPackager:
    def test_zip_packager_preserves_order(self):
        packager = ZipPackager()
        packager.add("z.png", b"1")
        packager.add("a.png", b"2")
        with zipfile.ZipFile(BytesIO(packager.finalize())) as zf:
            assert zf.namelist() == ["z.png", "a.png"]

    def test_close_after_finalize_is_harmless(self):
        packager = ZipPackager()
        packager.add("a.png", b"1")
        archive = packager.finalize()
        packager.close()
        packager.close()
        with zipfile.ZipFile(BytesIO(archive)) as zf:
            assert zf.namelist() == ["a.png"]

    def test_archive_filename_uses_milliseconds(self):
        assert archive_filename(1700000000.123) == "ipfs_collection_1700000000123.zip"
