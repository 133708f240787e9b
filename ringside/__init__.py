"""Wrestling promotion show simulation and championship lineage engine."""

__version__ = "0.1.0"
