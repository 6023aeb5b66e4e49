from typing import Optional


class PokerError(Exception):
    """Base error for endpoint-poker."""


class ConfigError(PokerError):
    """Bad endpoints file, bad descriptor or bad settings value. Fatal."""


class EnvFileError(PokerError):
    """A required env file could not be loaded. Fatal."""


class PokeError(PokerError):
    """A single endpoint failed. Stays inside the task that raised it."""

    def __init__(self, endpoint, detail: str, status_code: Optional[int] = None):
        self.endpoint = endpoint
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"{detail} for {endpoint.label}")
