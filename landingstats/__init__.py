"""landingstats - visitor analytics collector for a single landing page."""

__version__ = "0.1.0"
