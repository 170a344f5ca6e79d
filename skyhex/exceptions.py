"""Exception hierarchy for SkyHex."""


class SkyhexError(Exception):
    """Base exception for all SkyHex errors."""


class ConfigError(SkyhexError):
    """Invalid configuration. Raised at startup, never while serving."""


class UnsupportedResolutionError(SkyhexError, ValueError):
    """Requested H3 resolution is outside the supported or stored range."""

    def __init__(self, message: str, resolution=None):
        self.resolution = resolution
        super().__init__(message)


class InvalidCellError(SkyhexError, ValueError):
    """Cell identifier is empty, a placeholder, or not a valid H3 index."""

    def __init__(self, message: str, cell_id=None):
        self.cell_id = cell_id
        super().__init__(message)


class PolyfillMissingError(SkyhexError, FileNotFoundError):
    """Static polyfill grid for a resolution has not been generated yet."""
