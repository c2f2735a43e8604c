"""Command-line tools and debugging helpers.

This package contains the Matplotlib trajectory viewer, the SSH controller
CLI and the opt-in timing helpers in :mod:`debug`.
"""
