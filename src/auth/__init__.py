"""Identity provider integration."""

from src.auth.identity import IdentityProvider, SupabaseIdentityProvider

__all__ = ["IdentityProvider", "SupabaseIdentityProvider"]
