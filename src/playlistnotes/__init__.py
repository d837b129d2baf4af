"""playlistnotes - playlist import orchestration for the annotation app."""

__version__ = "0.1.0"
