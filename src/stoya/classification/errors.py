"""Safety classification errors."""


class ClassificationFailure(Exception):
    """Raised when media is judged unsafe or cannot be judged at all.

    Attributes:
        reason: Short explanation suitable for the uploader.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
