"""Schemas shared between the task tracker server and its clients."""
