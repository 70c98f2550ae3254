"""dclean - find and clean up disposable development artifacts."""

__version__ = "0.1.0"
