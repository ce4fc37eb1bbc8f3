"""Workspace provisioning and subscription lifecycle core."""
