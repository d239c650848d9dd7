"""bkptool: a per-file local backup stack."""

__version__ = "0.1.0"
