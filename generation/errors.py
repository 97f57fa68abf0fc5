"""
Typed failures of the selection and export pipeline.

Raised inside the core and translated to HTTP responses once, by the
exception handlers registered in main.py.
"""


class QuestionBankError(Exception):
    """Base class for every pipeline failure."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CriteriaValidationError(QuestionBankError):
    """Malformed or missing selection/export input. Rejected before the store is touched."""

    status_code = 400


class InsufficientPoolError(QuestionBankError):
    """Fewer matching questions than requested. No partial set is ever returned."""

    status_code = 400

    def __init__(self, available: int, requested: int):
        super().__init__(
            f"Only {available} questions available with the selected filters. "
            f"Please adjust your criteria."
        )
        self.available = available
        self.requested = requested


class StoreError(QuestionBankError):
    """The question store could not be queried."""

    status_code = 503

    def __init__(self, message: str = "Question store unavailable"):
        super().__init__(message)


class RenderError(QuestionBankError):
    """The document could not be built. The whole export fails."""

    status_code = 500

    def __init__(self, message: str = "Export failed"):
        super().__init__(message)
