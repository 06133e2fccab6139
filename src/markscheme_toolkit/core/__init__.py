"""Core models and schemas for the Mark Scheme Toolkit."""
