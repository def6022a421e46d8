"""AlloBricolage: home-services marketplace backend."""

__version__ = "0.1.0"
