"""Workflow execution: output directory preparation and agent process launch."""
