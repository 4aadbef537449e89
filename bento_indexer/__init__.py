"""Types, database models, storage helpers and processor interfaces for indexing blockchain blocks, events and transactions."""

__version__ = "0.1.0"