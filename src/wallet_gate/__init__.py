"""Wallet Gate: passwordless Sign-In with Ethereum sessions."""

__version__ = "0.1.0"
