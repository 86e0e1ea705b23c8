"""Command-line interface for ProxyDeck."""
