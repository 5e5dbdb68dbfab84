"""Exception types raised by the tutor engine."""


class TutorError(Exception):
    """Base class for every error the tutor surfaces to the user."""


class AIServiceError(TutorError):
    """The generative AI service failed, for any reason."""


class PlanGenerationError(TutorError):
    pass


class QuizStartError(TutorError):
    pass


class GradingError(TutorError):
    """Grading stopped part way through; graded answers so far are saved."""

    def __init__(self, message: str, graded: int, total: int):
        super().__init__(message)
        self.graded = graded
        self.total = total


class GradingInProgressError(TutorError):
    pass


class ImportFormatError(TutorError):
    pass


class ExportError(TutorError):
    pass


class NotFoundError(TutorError):
    pass
