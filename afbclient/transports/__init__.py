"""Concrete transports."""
