"""Exporter error taxonomy.

- InvalidConfiguration: fatal, raised while wiring components at startup
- FetchFailed / ParseFailed: recoverable, abandon the current refresh cycle
- TranslationFailed: a snapshot could not be turned into metric families

"Nothing found yet" is not an error: locators return None for it.
"""


class ExporterError(Exception):
    """Base class for all exporter errors."""


class InvalidConfiguration(ExporterError):
    """Configuration is unusable; the exporter must not start."""


class FetchFailed(ExporterError):
    """Downloading the newest fsimage from the NameNode failed."""


class ParseFailed(ExporterError):
    """An fsimage could not be parsed or aggregated into statistics."""


class TranslationFailed(ExporterError):
    """A statistics snapshot could not be translated into metric samples."""
