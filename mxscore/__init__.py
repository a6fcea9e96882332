"""MusicXML/MXL parsing into a validated, immutable score model."""

__version__ = "0.1.0"
