"""Standalone maintenance jobs, run with `python -m`."""
