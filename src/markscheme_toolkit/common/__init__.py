"""Shared helpers (text normalisation) used across the toolkit."""
