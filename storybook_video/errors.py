"""Exceptions raised by the video pipeline."""


class StorybookVideoError(RuntimeError):
    """Base class for every failure that aborts an export."""


class InvalidPageAsset(StorybookVideoError):
    """A page is missing its image or narration, or is out of sequence."""

    def __init__(self, index: int, reason: str):
        self.index = index
        self.reason = reason
        super().__init__(f"Invalid page {index}: {reason}")


class FrameSizeMismatch(InvalidPageAsset):
    """A page image does not share the frame size of page 0."""


class InvalidTimingConfig(StorybookVideoError):
    """Hold/fade durations that would produce a negative fade start."""


class SegmentEncodeFailed(StorybookVideoError):
    def __init__(self, page_index: int, diagnostic: str = ""):
        self.page_index = page_index
        self.diagnostic = diagnostic
        message = f"Encoding segment for page {page_index} failed"
        if diagnostic:
            message += f": {diagnostic}"
        super().__init__(message)


class ConcatenationFailed(StorybookVideoError):
    def __init__(self, diagnostic: str = ""):
        self.diagnostic = diagnostic
        message = "Concatenating segments failed"
        if diagnostic:
            message += f": {diagnostic}"
        super().__init__(message)


class StorageWriteFailed(StorybookVideoError):
    def __init__(self, name: str, reason: str = ""):
        self.name = name
        super().__init__(f"Could not stage '{name}'" + (f": {reason}" if reason else ""))


class StorageReadNotFound(StorybookVideoError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"'{name}' not found in engine storage")


class StoryFormatError(StorybookVideoError):
    """The story JSON document is missing or malformed."""


class NarrationFailed(StorybookVideoError):
    """A page's narration clip could not be synthesized or copied."""
