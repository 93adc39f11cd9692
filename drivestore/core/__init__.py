"""Core storage, authentication and configuration utilities."""
