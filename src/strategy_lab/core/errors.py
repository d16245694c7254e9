"""Custom exception hierarchy for the strategy lab core."""


class StrategyLabError(Exception):
    """Base exception for all strategy lab errors."""


# --- Configuration ---
class ConfigError(StrategyLabError):
    """Invalid or missing configuration."""


class UnknownStepError(ConfigError):
    """A step id was referenced that is not in the step definition set."""

    def __init__(self, step_id: str):
        self.step_id = step_id
        super().__init__(f"Unknown pipeline step: {step_id!r}")


# --- Storage ---
class StoreError(StrategyLabError):
    """Session store error."""


class NotFoundError(StoreError):
    """No value is stored under the requested key."""

    def __init__(self, storage_key: str, session_id: str):
        self.storage_key = storage_key
        self.session_id = session_id
        super().__init__(f"No stored value for {storage_key}_{session_id}")


class DeserializationError(StoreError):
    """Stored bytes exist but cannot be parsed back into a record."""


class SerializationError(StoreError):
    """Payload cannot be serialized as strict JSON."""


class InvalidKeyError(StoreError, ValueError):
    """Storage key or session id is malformed."""


# --- Selection ---
class SelectionError(StrategyLabError):
    """User selection does not satisfy a precondition."""


class InsufficientSelectionError(SelectionError):
    """Fewer sessions selected than the operation requires."""

    def __init__(self, selected: int, required: int = 2):
        self.selected = selected
        self.required = required
        super().__init__(
            f"Please select at least {required} sessions to compare "
            f"({selected} selected)."
        )


# --- Analytics ---
class AnalyticsError(StrategyLabError):
    """Metrics computation error."""


class EmptySeriesError(AnalyticsError):
    """A statistic was required over an empty series."""
