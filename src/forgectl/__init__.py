"""forgectl: personal command-line automation framework."""

__version__ = "0.1.0"
