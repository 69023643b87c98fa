"""mail-gate: inbound email screening and routing gate."""

__version__ = "0.1.0"
