"""HTTP API for Wallet Gate."""
