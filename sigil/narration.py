"""Voice-cue lines for the onboarding sequence."""

from typing import Optional

from .sequencer import Stage

INTRO_CUE = ("Module 01: Identity Authentication. "
             "Please calibrate your input by tracing the biometric sigil.")
RETRY_CUE = "Re-calibrating. Please try again."

STAGE_CUES = {
    Stage.UPLOAD: "Now, let's materialize your first data-construct into the vault.",
    Stage.SELECTION: "Secure your vault. Set your 6-digit quantum entanglement key.",
    Stage.FINISHED: "Calibration successful. Your Quantum Vault is now synchronized and secure.",
}


class Narrator:
    """
    Picks the line to speak when a stage is entered.

    The verification intro is spoken once per session; returning to the
    sigil later is silent until the verifier itself asks for a retry cue.
    """

    def __init__(self):
        self.intro_spoken = False

    def cue_for_stage(self, stage: Stage) -> Optional[str]:
        if stage == Stage.VERIFICATION:
            if self.intro_spoken:
                return None
            self.intro_spoken = True
            return INTRO_CUE
        # Anything past verification means the intro is no longer useful
        self.intro_spoken = True
        return STAGE_CUES.get(stage)
