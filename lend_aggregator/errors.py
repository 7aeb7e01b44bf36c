"""Error kinds raised by remote fetches and result parsing."""


class FetchError(Exception):
    """Base class for every failure of a remote fetch."""


class TransportError(FetchError):
    """Network, HTTP or remote-side failure (including timeouts)."""


class EmptyResultError(FetchError):
    """The call succeeded but returned no usable data."""


class NormalizationError(FetchError):
    """The result had an unexpected shape or an unknown decimal exponent."""
