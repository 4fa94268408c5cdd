"""RDS service broker: marketplace instances backed by tagged RDS DB instances."""

__version__ = "0.1.0"
