"""Token swap orchestration against a V2-style exchange router."""

__version__ = "0.1.0"
