"""Pydantic models for ProxyDeck deployments."""
