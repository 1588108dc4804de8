"""Error taxonomy for analysis and edit-decision validation.

Callers decide what to do with each error; nothing in this package retries
on its own.
"""


class MusicVideoError(Exception):
    """Base exception for Music Video Maker."""
    pass


class MediaDecodeError(MusicVideoError):
    """A media file could not be decoded.

    Unrecoverable for that file: decoding the same bytes again will fail the
    same way, so the user has to supply a different file.
    """
    pass


class ModelUnavailableError(MusicVideoError):
    """The inference backend failed to load or to run.

    Recoverable: the caller may keep the clip and skip deep visual analysis.
    """
    pass


class AlreadyInProgressError(MusicVideoError):
    """An analysis for the same clip key is already running."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"This clip is already being analyzed: {key}")


class SequenceGenerationError(MusicVideoError):
    """The sequencing oracle produced nothing usable, even after repair."""
    pass
