class JewelCaseError(Exception):
    """Base class for failures while turning an image into a jewel case shot."""


class UnsupportedFormat(JewelCaseError, ValueError):
    """The file extension is not one we can decode or encode."""

    def __init__(self, path, extension: str, direction: str = 'input'):
        self.path = path
        self.extension = extension
        self.direction = direction
        super().__init__(f"Unsupported {direction} image format: {extension or '(none)'} ({path})")


class DecodeFailure(JewelCaseError):
    """The input bytes could not be decoded into an image."""


class EncodeFailure(JewelCaseError):
    """The result could not be encoded or written to disk."""


class AlreadyProcessed(Exception):
    """
    The image already has the size of the framed output.

    Not a JewelCaseError: callers treat it as "skip", not as a failure.
    """

    def __init__(self, size):
        self.size = tuple(size)
        super().__init__(f"Image appears to be already processed ({self.size[0]}x{self.size[1]})")
