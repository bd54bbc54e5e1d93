import pytest

from sigil.errors import ConfigurationError
from sigil.gates import SelectionGate, UploadGate


@pytest.fixture()
def upload(scheduler):
    return UploadGate(scheduler)


@pytest.fixture()
def selection(scheduler):
    return SelectionGate(scheduler)


def test_upload_climbs_then_completes_after_hold(upload, scheduler):
    progress, done = [], []
    upload.progress_changed.connect(progress.append)
    upload.completed.connect(lambda: done.append(True))

    assert upload.start("ledger.pdf")
    assert upload.uploading
    scheduler.advance(2000)
    assert progress == [0, 10, 20, 30, 40, 50, 60, 70, 80, 90, 100]
    assert done == []
    scheduler.advance(999)
    assert done == []
    scheduler.advance(1)
    assert done == [True]
    assert upload.done and not upload.uploading
    assert upload.file_name == "ledger.pdf"


def test_upload_ignores_second_start(upload, scheduler):
    assert upload.start("a.txt")
    assert not upload.start("b.txt")
    assert upload.file_name == "a.txt"
    scheduler.run_until_idle()
    assert not upload.start("c.txt")


def test_upload_reset_cancels(upload, scheduler):
    done = []
    upload.completed.connect(lambda: done.append(True))
    upload.start("a.txt")
    scheduler.advance(600)
    upload.reset()
    assert upload.progress == 0
    scheduler.advance(10_000)
    assert done == []
    assert upload.start("b.txt")


def test_upload_uneven_step_caps_at_100(scheduler):
    gate = UploadGate(scheduler, step_ms=100, step_percent=30, hold_ms=0)
    progress = []
    gate.progress_changed.connect(progress.append)
    gate.start("x")
    scheduler.run_until_idle()
    assert progress == [0, 30, 60, 90, 100]
    assert gate.done


def test_selection_needs_distinct_items(selection, scheduler):
    remaining, done = [], []
    selection.selection_changed.connect(remaining.append)
    selection.completed.connect(lambda: done.append(True))

    for item in (3, 7, 3, 1, 9, 4):
        selection.select(item)
    assert selection.remaining == 1
    assert remaining == [5, 4, 3, 2, 1]
    assert selection.select(11)
    assert not selection.select(12)
    assert selection.selected == (3, 7, 1, 9, 4, 11)

    scheduler.advance(1499)
    assert done == []
    scheduler.advance(1)
    assert done == [True]


def test_selection_clear_cancels_pending_completion(selection, scheduler):
    done = []
    selection.completed.connect(lambda: done.append(True))
    for item in range(6):
        selection.select(item)
    selection.clear()
    assert selection.remaining == 6
    scheduler.advance(5000)
    assert done == []


@pytest.mark.parametrize("kwargs", [
    dict(step_ms=0), dict(step_percent=0), dict(step_percent=101), dict(hold_ms=-1),
])
def test_upload_invalid_pacing(scheduler, kwargs):
    with pytest.raises(ConfigurationError):
        UploadGate(scheduler, **kwargs)


def test_selection_invalid_size(scheduler):
    with pytest.raises(ConfigurationError):
        SelectionGate(scheduler, required=0)
