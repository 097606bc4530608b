"""Control TIDAL from the command line: catalog queries and desktop playback."""

__version__ = "0.1.0"
