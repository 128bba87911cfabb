class EMEError(Exception):
    """Base class for EME-specific errors."""


# Precondition failures, raised before the block cipher is touched
class InvalidBlockSize(EMEError, ValueError):
    pass


class InvalidTweakLength(EMEError, ValueError):
    pass


class InvalidMessageLength(EMEError, ValueError):
    pass


class BufferLengthMismatch(EMEError, ValueError):
    pass


class InvalidKeyLength(EMEError, ValueError):
    pass


# Raised mid-flight; no partial result is ever returned
class UnderlyingCipherFailure(EMEError):
    pass
