"""Adapters connecting fleetrecon to record stores and the extraction service."""
