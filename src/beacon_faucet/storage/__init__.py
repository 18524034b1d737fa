"""Persistent storage backends."""
