"""Rules resolution engine for a Shadowrun 4th edition character manager."""
__version__ = "1.0.0"
