class ChargewatchError(Exception):
    """Base class for errors raised by chargewatch."""


class InputError(ChargewatchError):
    """Missing or malformed request parameters."""


class FetchError(ChargewatchError):
    """The operator page could not be retrieved."""


class InterstitialPageDetected(FetchError):
    """The operator served its generic landing page instead of charger content."""
