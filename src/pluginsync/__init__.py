"""pluginsync: revision-tracked sync of a remote plugin catalog into a database."""

__version__ = "0.1.0"
