"""bzsync — keep a scaffolded workspace in sync with its upstream template."""

__version__ = "0.1.0"
