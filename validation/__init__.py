"""
Validation package: form checks run before calling the auth endpoints.
"""

from .auth import LoginInput, RegisterInput, validate_login, validate_register

__all__ = ["LoginInput", "RegisterInput", "validate_login", "validate_register"]
