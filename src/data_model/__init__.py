"""Shared data model base classes."""

from src.data_model.base import StrictBaseModel


__all__ = ["StrictBaseModel"]
