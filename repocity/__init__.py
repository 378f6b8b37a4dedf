"""repocity – turn a list of repositories into a procedurally generated city."""

__version__ = "0.1.0"
