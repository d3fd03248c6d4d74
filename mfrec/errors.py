from __future__ import annotations

from typing import Optional


class MFRecError(Exception):
    """Base class for all errors raised by mfrec."""


class ConfigurationError(MFRecError):
    """Invalid hyperparameters or a model that is not set up for the requested call."""


class ModelStateError(MFRecError):
    """The factor matrices are being updated and must not be read."""


class ModelCorruptError(MFRecError):
    """
    A model file violates its declared structure:
      - user/item factor column counts differ, or
      - the number of values does not match the declared shape.
    """

    def __init__(
        self,
        message: str,
        user_columns: Optional[int] = None,
        item_columns: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.user_columns = user_columns
        self.item_columns = item_columns


class ResourceError(MFRecError):
    """A model or prediction stream could not be opened, read or written."""
