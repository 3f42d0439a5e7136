"""
Picks Engine — Error Taxonomy
───────────────────────────────
Only generation-stage and batch-level failures ever reach a caller.
Cache and learning-state failures are logged and absorbed where they happen.
"""


class PicksEngineError(Exception):
    """Base for every error this package raises."""


class ConfigurationError(PicksEngineError):
    """Credentials missing or malformed. Degrades a feature, never fatal."""


class GenerationError(PicksEngineError):
    """The generative model could not produce a response."""


class ResponseValidationError(PicksEngineError):
    """Generated text could not be turned into a usable result."""

    @property
    def user_message(self) -> str:
        return f"Failed to parse AI response: {self}"


class ParseError(ResponseValidationError):
    """No JSON object could be extracted from the generated text."""


class FormatError(ResponseValidationError):
    """JSON was present but lacked the expected structure."""


class BatchEmptyError(ResponseValidationError):
    """Every candidate pick was rejected."""


class PickRejected(PicksEngineError):
    """One pick failed validation. Caught per pick; the batch continues."""

    def __init__(self, ticker: str, reason: str):
        super().__init__(f"{ticker or '?'}: {reason}")
        self.ticker = ticker
        self.reason = reason
