"""Shared data model primitives."""

from aem_ops.data_model.base import OutputModel, StrictBaseModel


__all__ = ["OutputModel", "StrictBaseModel"]
