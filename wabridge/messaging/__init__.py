"""Outbound messaging through platform send APIs."""
