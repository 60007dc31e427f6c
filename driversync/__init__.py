"""DriverSync: resilient delivery-confirmation submission for field drivers."""

__version__ = "0.1.0"
