class InvalidArgument(ValueError):
    """Raised when clustering or segmentation inputs fail their preconditions."""
