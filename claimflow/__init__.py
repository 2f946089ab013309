"""Role-gated lecturer claims approval workflow."""

__version__ = "1.0.0"
