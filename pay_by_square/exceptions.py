"""Exception hierarchy for the Pay by Square encoder.

Every failure raised by the encoding pipeline derives from
``PayBySquareError`` so callers can catch the whole family at once. The
concrete classes also derive from the closest built-in exception, which keeps
``except ValueError`` style handlers working.
"""


class PayBySquareError(Exception):
    """Base class for all encoder errors."""


class ValidationError(PayBySquareError, ValueError):
    """The payment record cannot be encoded as it stands.

    This is the only error a caller can fix by changing the record (or the
    options used to build it) and trying again.
    """


class DependencyUnavailableError(PayBySquareError, RuntimeError):
    """A required external capability (compressor, QR renderer) is missing."""


class EncodingOverflowError(PayBySquareError, ValueError):
    """The serialized record does not fit the 16-bit length field of the header."""
