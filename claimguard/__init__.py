"""ClaimGuard - single-use prize claim tokens with IP fraud guard."""

__version__ = "1.0.0"
