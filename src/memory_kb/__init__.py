"""memory-kb: a personal knowledge base of linked entries."""

__version__ = "0.1.0"
