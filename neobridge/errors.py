class BridgeError(Exception):
    """Base error for the agent bridge."""


class ConfigurationError(BridgeError):
    """Missing API key or backend URL. Reported before any request is issued."""


class TurnInProgressError(BridgeError):
    """A new turn was requested while another one is still streaming."""
