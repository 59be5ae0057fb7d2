"""driftwatch - keeps project documentation honest about the code it describes."""

__version__ = "1.0.0"
