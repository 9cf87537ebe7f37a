"""Gym scheduling and availability conflict engine."""

__version__ = "0.1.0"
