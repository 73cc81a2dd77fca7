"""draftline: snapshot, branch and restore support for composite documents."""

__version__ = "1.0.0"
