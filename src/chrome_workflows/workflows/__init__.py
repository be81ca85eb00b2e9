"""Workflow definitions, discovery, parameter validation and prompt composition."""
