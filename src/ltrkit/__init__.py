"""LTR feature extraction jobs and SMM pseudo-relevance feedback."""

__version__ = "0.1.0"
