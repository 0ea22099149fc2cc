"""Host-side data structures and wire protocol for a processing-in-memory join engine."""

__version__ = "0.1.0"