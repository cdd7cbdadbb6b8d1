"""Members module.

Provides functionality for:
- Syncing members from the identity provider on login
- Profiles with owned and held books
- Access requests and admin approval
"""

from .manager import UserManager

__all__ = ["UserManager"]
