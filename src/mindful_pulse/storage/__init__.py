"""Durable key-value storage for the settings record."""
