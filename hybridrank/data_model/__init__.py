"""Shared data model primitives."""

from hybridrank.data_model.base import StrictBaseModel


__all__ = ["StrictBaseModel"]
