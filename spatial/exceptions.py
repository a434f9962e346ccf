"""Spatial index failures."""


class SpatialIndexError(Exception):
    """Base class for index-layer errors."""


class InvalidLocation(SpatialIndexError):
    """A non-remote item has no usable coordinates."""

    def __init__(self, item_id=None):
        self.item_id = item_id
        label = f" {item_id}" if item_id else ""
        super().__init__(f"Cannot compute cell id: item{label} has no coordinates and is not remote")


class InvalidResolution(SpatialIndexError):
    """Resolution outside [0, 15]."""

    def __init__(self, resolution):
        self.resolution = resolution
        super().__init__(f"Invalid H3 resolution: {resolution} (must be 0-15)")


class IndexOperationFailure(SpatialIndexError):
    """Underlying grid math failed (e.g. cross-face distance, pentagon distortion)."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")
