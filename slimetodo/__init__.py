"""slimetodo - single-user task engine with natural-language quick add."""

__version__ = "0.1.0"
