"""Logging and metrics for kubewait."""
