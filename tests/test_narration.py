from sigil.narration import INTRO_CUE, STAGE_CUES, Narrator
from sigil.sequencer import Stage


def test_intro_spoken_once():
    n = Narrator()
    assert n.cue_for_stage(Stage.VERIFICATION) == INTRO_CUE
    assert n.cue_for_stage(Stage.VERIFICATION) is None


def test_skipping_ahead_silences_intro():
    n = Narrator()
    assert n.cue_for_stage(Stage.SELECTION) == STAGE_CUES[Stage.SELECTION]
    assert n.cue_for_stage(Stage.VERIFICATION) is None
