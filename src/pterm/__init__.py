"""Persistent named terminals backed by multiplexer sessions."""

__version__ = "0.1.0"
