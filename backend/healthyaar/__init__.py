"""Health Yaar AI - health profile backend and client workflow."""

__version__ = "1.0.0"
