"""designer-gallery: a synchronized portfolio gallery over a hosted backend."""

__version__ = "0.3.0"
