"""
Error taxonomy for the habit audio pipeline.

Date and narrator errors abort a whole generation run. Script, TTS and
timeout errors are caught per habit and stored as the clip's error_message,
so their str() should read well on its own.
"""


class AudioGenerationError(RuntimeError):
    """Base class for every pipeline failure."""


class InvalidDateError(AudioGenerationError, ValueError):
    """The supplied date could not be parsed."""


class NarratorNotFoundError(AudioGenerationError, LookupError):
    """An explicit narrator id does not exist."""

    def __init__(self, narrator_id):
        super().__init__(f"Narrator not found: {narrator_id}")
        self.narrator_id = narrator_id


class NoDefaultNarratorError(AudioGenerationError, LookupError):
    """No narrator id was given and none is flagged as default."""

    def __init__(self):
        super().__init__("No default narrator configured")


class NarratorValidationError(AudioGenerationError, ValueError):
    """A narrator write was rejected (missing fields, duplicate name, bad temperature)."""


class DuplicateNarratorError(NarratorValidationError):
    """Narrator names are unique."""

    def __init__(self, name):
        super().__init__(f"A narrator named {name!r} already exists")
        self.name = name


class SampleNotFoundError(AudioGenerationError, LookupError):
    def __init__(self, sample_id):
        super().__init__(f"Sample not found: {sample_id}")
        self.sample_id = sample_id


class ScriptGenerationFailed(AudioGenerationError):
    """Missing credential, HTTP failure or empty completion."""


class TtsServerUnavailable(AudioGenerationError):
    """The TTS server never answered the readiness probe."""


class SynthesisRequestFailed(AudioGenerationError):
    """The synthesis trigger itself was rejected or errored."""


class SynthesisTimeout(AudioGenerationError):
    """The TTS server accepted the request but the .wav never appeared."""

    def __init__(self, path):
        super().__init__(f"Timed out waiting for synthesized file: {path}")
        self.path = path


class ClipPersistenceError(AudioGenerationError):
    """Writing the clip row failed."""
