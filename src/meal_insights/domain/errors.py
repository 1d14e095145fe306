"""Error taxonomy for meal operations."""

TIMEOUT_MESSAGE = "Analysis is taking too long. Please try again with a clearer image."
FAILURE_MESSAGE = (
    "Unable to analyze this image. Please try a clearer photo with better "
    "lighting, or try again later."
)


class MealInsightsError(Exception):
    """Base class for errors surfaced to API callers."""


class ValidationError(MealInsightsError):
    """Missing or malformed caller input."""


class NotFoundError(MealInsightsError):
    """Meal is absent or not owned by the caller."""


class UpstreamAnalysisError(MealInsightsError):
    """The AI analyzer failed or did not answer in time."""

    def __init__(self, message: str, *, timed_out: bool = False) -> None:
        super().__init__(message)
        self.timed_out = timed_out

    @classmethod
    def timeout(cls) -> "UpstreamAnalysisError":
        """Build the user-facing timeout error."""
        return cls(TIMEOUT_MESSAGE, timed_out=True)

    @classmethod
    def failure(cls) -> "UpstreamAnalysisError":
        """Build the user-facing generic analysis error."""
        return cls(FAILURE_MESSAGE)


class StoreError(MealInsightsError):
    """The meal store did not return the expected row."""
