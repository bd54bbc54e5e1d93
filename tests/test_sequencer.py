import pytest

from sigil.errors import ConfigurationError
from sigil.sequencer import PROGRESS_TABLE, Stage, StageSequencer


@pytest.fixture()
def seq():
    return StageSequencer()


@pytest.fixture()
def changes(seq):
    stages, progress = [], []
    seq.stage_changed.connect(stages.append)
    seq.progress_changed.connect(progress.append)
    return stages, progress


def test_starts_on_first_stage(seq):
    assert seq.current_stage == Stage.VERIFICATION
    assert seq.completed_stages == frozenset()
    assert seq.progress_percent() == 0
    assert not seq.finished


def test_forward_progression(seq, changes):
    stages, progress = changes
    seq.mark_complete(Stage.VERIFICATION)
    seq.mark_complete(Stage.UPLOAD)
    seq.mark_complete(Stage.SELECTION)
    assert stages == [Stage.UPLOAD, Stage.SELECTION, Stage.FINISHED]
    assert progress == [15, 50, 100]
    assert seq.finished


def test_mark_complete_is_idempotent(seq, changes):
    stages, progress = changes
    seq.mark_complete(Stage.VERIFICATION)
    once = (seq.completed_stages, seq.current_stage)
    seq.mark_complete(Stage.VERIFICATION)
    assert (seq.completed_stages, seq.current_stage) == once
    assert stages == [Stage.UPLOAD]
    assert progress == [15]


def test_completing_a_non_current_stage_does_not_move(seq, changes):
    stages, progress = changes
    seq.mark_complete(Stage.UPLOAD)
    assert seq.current_stage == Stage.VERIFICATION
    assert seq.is_complete(Stage.UPLOAD)
    assert stages == []
    assert progress == [50]


def test_unknown_stage_is_ignored(seq):
    seq.mark_complete(Stage.FINISHED)
    assert seq.completed_stages == frozenset()


def test_jump_backfills_preceding_stages(seq, changes):
    stages, progress = changes
    seq.jump_to(Stage.SELECTION)
    assert seq.completed_stages == {Stage.VERIFICATION, Stage.UPLOAD}
    assert seq.current_stage == Stage.SELECTION
    assert stages == [Stage.SELECTION]
    assert progress == [50]


def test_jump_to_first_stage_backfills_nothing(seq):
    seq.mark_complete(Stage.VERIFICATION)
    seq.jump_to(Stage.VERIFICATION)
    assert seq.current_stage == Stage.VERIFICATION
    assert seq.completed_stages == {Stage.VERIFICATION}


def test_jump_outside_sequence_is_noop(seq, changes):
    seq.jump_to(Stage.FINISHED)
    assert seq.current_stage == Stage.VERIFICATION
    assert changes == ([], [])


def test_navigation_guards(seq):
    assert seq.can_navigate_to(Stage.VERIFICATION)
    assert not seq.can_navigate_to(Stage.UPLOAD)
    assert not seq.can_navigate_to(Stage.SELECTION)
    assert not seq.can_navigate_to(Stage.FINISHED)

    assert not seq.navigate_to(Stage.SELECTION)
    assert seq.current_stage == Stage.VERIFICATION
    assert seq.completed_stages == frozenset()

    seq.mark_complete(Stage.VERIFICATION)
    assert seq.can_navigate_to(Stage.UPLOAD)
    assert not seq.can_navigate_to(Stage.SELECTION)


def test_rewind_to_completed_stage_and_forward_again(seq, changes):
    stages, _ = changes
    seq.mark_complete(Stage.VERIFICATION)
    seq.mark_complete(Stage.UPLOAD)
    assert seq.navigate_to(Stage.VERIFICATION)
    assert seq.current_stage == Stage.VERIFICATION
    # Rewinding never removes completion
    assert seq.completed_stages == {Stage.VERIFICATION, Stage.UPLOAD}
    assert seq.progress_percent() == 50
    # Completing it again moves on to the next stage in order
    seq.mark_complete(Stage.VERIFICATION)
    assert seq.current_stage == Stage.UPLOAD
    assert stages == [Stage.UPLOAD, Stage.SELECTION, Stage.VERIFICATION, Stage.UPLOAD]


def test_navigate_to_frontier(seq):
    seq.mark_complete(Stage.VERIFICATION)
    seq.mark_complete(Stage.UPLOAD)
    seq.navigate_to(Stage.VERIFICATION)
    assert seq.navigate_to(Stage.SELECTION)
    assert seq.completed_stages == {Stage.VERIFICATION, Stage.UPLOAD}


def test_progress_is_keyed_on_furthest_stage():
    seq = StageSequencer()
    seq.mark_complete(Stage.SELECTION)
    assert seq.progress_percent() == 100
    seq.mark_complete(Stage.VERIFICATION)
    assert seq.progress_percent() == 100


def test_progress_never_decreases(seq):
    seen = [seq.progress_percent()]
    for action in (
        lambda: seq.mark_complete(Stage.VERIFICATION),
        lambda: seq.navigate_to(Stage.VERIFICATION),
        lambda: seq.jump_to(Stage.SELECTION),
        lambda: seq.navigate_to(Stage.UPLOAD),
        lambda: seq.mark_complete(Stage.UPLOAD),
        lambda: seq.mark_complete(Stage.SELECTION),
    ):
        action()
        seen.append(seq.progress_percent())
    assert seen == sorted(seen)
    assert seen[-1] == 100


def test_custom_stage_list():
    seq = StageSequencer(stages=[Stage.VERIFICATION, Stage.SELECTION],
                         progress_table={None: 0, Stage.VERIFICATION: 40,
                                         Stage.SELECTION: 100})
    seq.mark_complete(Stage.VERIFICATION)
    assert seq.current_stage == Stage.SELECTION
    seq.mark_complete(Stage.SELECTION)
    assert seq.finished


@pytest.mark.parametrize("kwargs", [
    dict(stages=[]),
    dict(stages=[Stage.VERIFICATION, Stage.FINISHED]),
    dict(stages=[Stage.UPLOAD, Stage.UPLOAD]),
    dict(progress_table={None: 0, Stage.VERIFICATION: 15}),
    dict(progress_table={None: 0, Stage.VERIFICATION: 60,
                         Stage.UPLOAD: 50, Stage.SELECTION: 100}),
])
def test_invalid_configuration(kwargs):
    with pytest.raises(ConfigurationError):
        StageSequencer(**kwargs)


def test_default_table():
    assert [PROGRESS_TABLE[k] for k in (None, Stage.VERIFICATION, Stage.UPLOAD,
                                         Stage.SELECTION)] == [0, 15, 50, 100]
