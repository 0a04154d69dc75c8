"""Batch generation, win validation and the scratchgen CLI."""
