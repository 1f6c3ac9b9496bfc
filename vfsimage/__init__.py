"""A block-based virtual filesystem stored in a single image file, with commands to create, inspect and edit it."""

__version__ = "0.1.0"