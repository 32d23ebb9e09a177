"""layout-retarget: adapt positioned design frames to new canvas sizes."""

__version__ = "0.1.0"
