"""Wrapper that supervises a SuperTuxKart server through its log file."""

__version__ = "0.1.0"
