# tabclean/exceptions.py
from typing import Optional


class CleaningError(Exception):
    """Base class for errors surfaced to the caller of the cleaning pipeline"""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {'error': self.message}
        if self.details is not None:
            payload['details'] = self.details
        return payload


class InvalidInputError(CleaningError):
    """Raised when the submitted dataset cannot be read as a table"""

    status_code = 400


class InputTooLargeError(CleaningError):
    status_code = 413


class PipelineError(CleaningError):
    """Raised when a pipeline stage failed and no usable report exists"""

    status_code = 500


class UpstreamFailure(CleaningError):
    """The external cleaning delegate was unreachable or answered garbage.

    ``details`` carries the upstream's raw diagnostic text so the caller can
    show it verbatim.
    """

    status_code = 502


class DelegateNotConfigured(CleaningError):
    status_code = 503
