"""Exceptions raised when cloud fill inputs are rejected."""


class CloudFillError(ValueError):
    """Base class for rejected cloud fill inputs."""


class ShapeMismatchError(CloudFillError):
    """Image, mask and dims extents disagree."""


class InvalidParameterError(CloudFillError):
    """A tuning parameter or mask value is out of its valid range."""
