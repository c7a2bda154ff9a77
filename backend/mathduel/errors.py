"""Domain exceptions shared by services and routes."""


class MathduelError(Exception):
    """Base class for errors raised by mathduel services."""


class InvalidExpression(MathduelError):
    """The expression contains something other than integer arithmetic."""


class GenerationExhausted(MathduelError):
    """The rejection sampler gave up before finding an acceptable sample."""

    def __init__(self, attempts: int):
        super().__init__(f"No acceptable expression after {attempts} attempts")
        self.attempts = attempts


class GameNotFound(MathduelError):
    def __init__(self, game_id: str):
        super().__init__(f"Game {game_id} not found")
        self.game_id = game_id


class StaleDocumentError(MathduelError):
    """A compare-and-set write observed a newer document version."""

    def __init__(self, game_id: str, expected_version: int, actual_version=None):
        super().__init__(
            f"Game {game_id} changed concurrently (expected version {expected_version}, found {actual_version})"
        )
        self.game_id = game_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class ChangeDeliveryError(MathduelError):
    """One or more change handlers failed after the change was stored."""

    def __init__(self, failures):
        first_change, first_exc = failures[0]
        super().__init__(
            f"{len(failures)} change handler(s) failed, first for game {first_change.game_id}: {first_exc}"
        )
        self.failures = failures
