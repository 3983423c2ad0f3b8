"""roomchain: room lifecycle coordination on an eventually-confirmed ledger."""

__version__ = "0.1.0"
