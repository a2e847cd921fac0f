"""Viewport resolution module for Stayfinder."""

from .resolver import ViewportResolver

__all__ = ['ViewportResolver']
