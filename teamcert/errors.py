"""Exception types raised while verifying participants and rendering certificates."""


class CertificateError(Exception):
    """Base class for every failure the verification service knows how to report."""


class ValidationError(CertificateError):
    """A required input field was missing or blank."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class DataSourceError(CertificateError):
    """The roster file could not be read or parsed."""


class TemplateError(CertificateError):
    """Template or font assets were unusable, or rendering failed."""


class TextOverflowError(TemplateError):
    """Text still exceeded the allowed width at the minimum font size."""
