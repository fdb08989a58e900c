"""Shared utilities for the board engine."""
