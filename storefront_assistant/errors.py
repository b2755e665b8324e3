class DiscoveryError(Exception):
    """Base class for errors raised inside the discovery engine."""


class TransportError(DiscoveryError):
    """The generative model could not be reached or refused the request."""


class ContractViolation(DiscoveryError):
    """Model output did not follow the JSON shape the prompt asked for."""


class CatalogError(DiscoveryError):
    """A catalog or store context file exists but cannot be used."""
