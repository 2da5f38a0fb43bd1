"""Domain exceptions for the Guru Protocol core.

Scoring and persistence never raise to the player — they degrade to neutral
values instead. These exceptions cover the remaining caller mistakes:
addressing a stage that doesn't exist, starting a locked stage, or
referencing a session the recorder never opened (or already closed).

Tier 1 leaf module: stdlib only.
"""


class GuruError(Exception):
    """Base class for every Guru Protocol domain error."""


class InvalidStageError(GuruError, ValueError):
    """Raised when a stage number falls outside the 1..5 ladder."""

    def __init__(self, stage: int) -> None:
        super().__init__(f"Invalid stage: {stage!r}. Valid stages: 1-5")
        self.stage = stage


class StageLockedError(GuruError):
    """Raised when a session is started on a stage that isn't unlocked yet."""

    def __init__(self, stage: int) -> None:
        super().__init__(
            f"Stage {stage} is locked. Complete stage {stage - 1} first."
        )
        self.stage = stage


class SessionNotFoundError(GuruError, KeyError):
    """Raised when a session id is unknown to the recorder."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session not found: {self.session_id}"


class SessionAlreadyCompletedError(GuruError):
    """Raised when a session that was already finalized is completed again."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session already completed: {session_id}")
        self.session_id = session_id


class SessionStageMismatchError(GuruError):
    """Raised when a session is completed as a different stage than it was opened on."""

    def __init__(self, session_id: str, opened_stage: int, stage: int) -> None:
        super().__init__(
            f"Session {session_id} was started on stage {opened_stage}, "
            f"not stage {stage}."
        )
        self.session_id = session_id
        self.opened_stage = opened_stage
        self.stage = stage


class TutorialStepNotPassedError(GuruError):
    """Raised when advancing past a tutorial step that hasn't been passed yet."""

    def __init__(self, step_id: str) -> None:
        super().__init__(
            f"Tutorial step {step_id!r} is not passed yet. "
            "Pass it the required number of times first."
        )
        self.step_id = step_id


class TutorialCompletedError(GuruError):
    """Raised when a finished tutorial is played again without a reset."""

    def __init__(self) -> None:
        super().__init__("The tutorial is already complete. Reset it to play again.")
