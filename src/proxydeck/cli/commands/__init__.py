"""ProxyDeck CLI commands."""
