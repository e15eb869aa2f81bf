class DocmergeError(Exception):
    """Base class for errors that abort a reconciliation run."""


class MalformedInputError(DocmergeError, ValueError):
    """The paragraph sequence or markdown blob cannot be read into the data model."""


class ConfigurationError(DocmergeError, ValueError):
    """Invalid heading mode or protected-heading configuration."""
