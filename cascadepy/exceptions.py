class DecaySchemeError(ValueError):
    """
    Base class for errors raised while building a decay scheme.

    Parameters
    ----------
    message : str
        Human readable description.
    identifier : optional
        The offending level name, atomic number or file name.
    """

    def __init__(self, message, identifier=None):
        super().__init__(message)
        self.identifier = identifier


class UnknownLevelError(DecaySchemeError):
    pass


class DuplicateLevelError(DecaySchemeError):
    pass


class BadAugerZError(DecaySchemeError):
    pass


class InvalidCaptureError(DecaySchemeError):
    pass


class MissingDecayDataError(DecaySchemeError):
    pass


class MissingBindingEnergyError(DecaySchemeError):
    pass


class InvalidDistributionError(ValueError):
    """Sampling was attempted from an empty or zero-weight distribution."""
    pass
