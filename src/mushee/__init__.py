"""MuShee - MusicXML sheet music library."""

__version__ = "0.1.0"
