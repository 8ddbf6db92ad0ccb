"""Orchestration of distribution, import, export and placement workflows."""
