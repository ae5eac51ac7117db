"""Upstream REST API client, payload mappers and error taxonomy."""
