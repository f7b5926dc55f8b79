"""upkeep: recurring maintenance scheduling for industrial machinery."""

__version__ = "0.1.0"
