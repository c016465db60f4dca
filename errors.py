class GeneratorError(Exception):
    """Base class for program generation failures."""


class ValidationError(GeneratorError, ValueError):
    """Raised for malformed or inconsistent user preferences."""


class InsufficientExercisesError(GeneratorError):
    """Raised when the catalog cannot fill a training day.

    ``muscle`` names the muscle group that could not be covered and
    ``split`` the split category of the day being assembled.
    """

    def __init__(self, muscle: str, split: str, message: str | None = None) -> None:
        self.muscle = muscle
        self.split = split
        super().__init__(
            message
            or f"not enough eligible exercises for {muscle} on {split} day"
        )

    def to_dict(self) -> dict:
        return {"error": str(self), "muscle": self.muscle, "split": self.split}
