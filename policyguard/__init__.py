"""Access control models, policy storage in files, role management and logging hooks."""

__version__ = "0.1.0"