"""Content migrations and content transfer between Contentful environments."""

__version__ = "0.3.0"
