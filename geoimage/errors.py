"""Error taxonomy for geometry, export, calibration and inference."""


class GeoImageError(Exception):
    """Base exception for GeoImage errors."""

    def __init__(self, message: str, error_type: str = "unknown"):
        super().__init__(message)
        self.error_type = error_type


class ShapeKindError(GeoImageError):
    """Primitive kind has no tessellation."""

    def __init__(self, message: str):
        super().__init__(message, error_type="shape_kind")


class InvalidColorError(GeoImageError):
    """Color string is not a valid #rrggbb hex value."""

    def __init__(self, message: str):
        super().__init__(message, error_type="invalid_color")


class CalibrationInputError(GeoImageError):
    """Calibration length or measured points cannot produce a scale."""

    def __init__(self, message: str):
        super().__init__(message, error_type="calibration_input")


class CalibrationStateError(GeoImageError):
    """Calibration operation is not allowed in the current state."""

    def __init__(self, message: str):
        super().__init__(message, error_type="calibration_state")


class SerializationIOError(GeoImageError):
    """Export output could not be written to its destination."""

    def __init__(self, message: str):
        super().__init__(message, error_type="serialization_io")


class EmptyResponseError(GeoImageError):
    """Inference service returned no content."""

    def __init__(self, message: str):
        super().__init__(message, error_type="empty_response")


class MalformedDataError(GeoImageError):
    """Inference payload does not match the primitive schema."""

    def __init__(self, message: str):
        super().__init__(message, error_type="malformed_data")
