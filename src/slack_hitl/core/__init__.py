"""Core domain and protocol layer."""
