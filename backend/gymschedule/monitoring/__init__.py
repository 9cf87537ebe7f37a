"""Metrics collection for the scheduling engine."""
