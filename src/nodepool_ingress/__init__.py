"""Per-node-pool ingress addon lifecycle management."""

__version__ = "0.1.0"
