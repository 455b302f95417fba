"""Core wabridge infrastructure: configuration, logging, events and tasks."""
