"""Exceptions raised by improc."""


class ImprocError(Exception):
    """Base class for all improc errors."""


class PreconditionError(ImprocError, ValueError):
    """Input does not satisfy the operation's requirements (channels, color space, kernel size...)."""


class DescriptorMismatchError(PreconditionError):
    """Two descriptors of different variants (or a missing descriptor) were compared."""
