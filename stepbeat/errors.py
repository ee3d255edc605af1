"""Errors raised by the Spotify adapters and handled by the sync core.

Benign outcomes (empty result, gate busy, background allowance exhausted)
are not exceptions; they are reported as reason strings.
"""


class StepBeatError(Exception):
    """Base class; ``code`` is the short reason string used in logs and API results."""
    code = "error"


class NoCredential(StepBeatError):
    """No valid Spotify token is cached; run the authorization flow first."""
    code = "no_credential"


class NotConnected(StepBeatError):
    """No active playback device to control."""
    code = "not_connected"


class TransportFailure(StepBeatError):
    """The Spotify API call failed (network, HTTP error, rate limit)."""
    code = "transport_failure"


class MalformedResponse(StepBeatError):
    """A payload did not match the expected shape."""
    code = "malformed_response"
