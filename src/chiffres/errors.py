"""
Exceptions raised while building a puzzle instance.
"""


class ConfigurationError(ValueError):
    """The puzzle instance cannot be encoded as configured.

    Raised eagerly, before any solving starts, e.g. when a starting value
    or the target does not fit in signed bit-vectors of the requested size.
    """
