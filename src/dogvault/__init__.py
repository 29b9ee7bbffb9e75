"""dogvault: back up and restore platform configuration resources as files."""

__version__ = "0.1.0"
