"""EduLedger - curriculum progression and access-credit back office."""

__version__ = "0.1.0"
