"""Live fact-checker: speech -> transcript -> claims -> verdicts."""

__version__ = "0.1.0"
