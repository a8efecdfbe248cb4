"""Exceptions raised by the smart input pipeline."""


class SmartInputError(Exception):
    """Base class for smart input errors."""


class InvalidAnchorError(SmartInputError, TypeError):
    """Raised when parse() is called without a usable anchor datetime."""


class RecognizerError(SmartInputError):
    """A recognizer raised while scanning text.

    Never propagated out of the parser; it only shapes the message that ends
    up in ParseResult.error.
    """

    def __init__(self, recognizer: str, original: BaseException):
        self.recognizer = recognizer
        self.original = original
        super().__init__(f"{recognizer} failed: {original}")
