"""Clients for the hosted backend: object storage and auth."""
