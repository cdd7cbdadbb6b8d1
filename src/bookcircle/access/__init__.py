"""Authentication and admission checks."""

from .gate import AccessGate, Principal, StaticTokenVerifier, TokenVerifier

__all__ = ["AccessGate", "Principal", "StaticTokenVerifier", "TokenVerifier"]
