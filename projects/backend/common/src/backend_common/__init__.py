"""Shared building blocks for backend services."""
