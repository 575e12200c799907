"""Location tracking core: position filtering, address caching and change detection."""

__version__ = "0.1.0"
