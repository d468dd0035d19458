"""Configuration, time and cryptographic primitives."""
