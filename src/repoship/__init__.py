"""Publication pipeline for apt and yum repositories."""

__version__ = "0.1.0"
