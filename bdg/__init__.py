"""bdg: manage the badge block of a README."""

__version__ = "0.3.0"
