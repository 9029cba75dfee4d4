"""Custodial Solana balance and transfer relay."""

__version__ = "0.1.0"
