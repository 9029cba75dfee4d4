"""Session token authorization."""

from solrelay.auth.gate import AuthorizationGate, Subject, extract_token

__all__ = ["AuthorizationGate", "Subject", "extract_token"]
