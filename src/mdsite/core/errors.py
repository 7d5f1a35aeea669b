"""Build failure types raised by the loader, indexer, renderer and writer"""


class SiteError(Exception):
    """Base class for fatal build errors."""


class ConfigError(SiteError):
    """Site configuration or tool settings could not be read or validated."""


class MalformedMetadata(SiteError):
    """A content document has missing or invalid front-matter."""

    def __init__(self, identifier: str, reason: str):
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"{identifier}: {reason}")


class OutputWriteFailure(SiteError):
    """The output tree could not be written; nothing was published."""

    def __init__(self, target, cause: OSError):
        self.target = target
        self.cause = cause
        super().__init__(f"Failed to write {target}: {cause}")


class MissingSeriesReference(UserWarning):
    """A document names a series that the site configuration does not declare.

    Logged, never raised: the document still renders, without series navigation.
    """

    def __init__(self, identifier: str, series: str):
        self.identifier = identifier
        self.series = series
        super().__init__(f"{identifier}: unknown series '{series}'")
