"""RBAC admin API: role-based access control on top of OAuth sign-in."""

__version__ = "0.1.0"
