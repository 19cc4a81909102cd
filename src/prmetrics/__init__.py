"""PR Metrics - size pull requests and keep their metrics comments in sync."""

__version__ = "0.1.0"
