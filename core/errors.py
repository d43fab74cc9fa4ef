"""Outcomes the front-end has to turn into a user-facing message."""


class BotError(Exception):
    """Base class for expected, non-fatal failures."""


class NotFound(BotError):
    """The requested set or card does not exist upstream."""


class RateLimited(BotError):
    def __init__(self, remaining_ms: int):
        super().__init__(f"cooldown active for another {remaining_ms} ms")
        self.remaining_ms = int(remaining_ms)


class ProviderUnavailable(BotError):
    """The card catalog failed or timed out."""
