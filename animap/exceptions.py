"""Exception classes for the animap pipeline."""


class AnimapError(Exception):
    """Base exception for animap errors."""

    pass


class UpdateError(AnimapError):
    """Raised when rebuilding an animation cache from its source fails."""

    pass


class FetchError(UpdateError):
    """Raised when the source bytes could not be downloaded."""

    pass


class DecodeError(UpdateError):
    """Raised for malformed or unsupported source image data."""

    pass


class EncodeError(UpdateError):
    """Raised when a tile image can not be mapped onto the palette."""

    pass


class LoadError(AnimapError):
    """Raised when persisted cache data is missing, corrupt or inconsistent."""

    pass
