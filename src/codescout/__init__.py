"""codescout: semantic code search over a locally indexed source tree."""

__version__ = "0.3.0"
