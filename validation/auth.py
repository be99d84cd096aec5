"""
Login and registration form validation.
Only the pass/fail contract matters to callers: validate_* returns a list of (field, message).
"""

import re
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, EmailStr, Field, ValidationError, field_validator, model_validator

from normalize.models import Role

_PASSWORD_MIX = re.compile(r'^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)')


class LoginInput(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class RegisterInput(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    confirm_password: str = Field(..., min_length=1)
    role: str

    @field_validator('password')
    @classmethod
    def password_mix(cls, v: str) -> str:
        if not _PASSWORD_MIX.match(v):
            raise ValueError('Password must contain uppercase, lowercase, and number')
        return v

    @field_validator('role')
    @classmethod
    def known_role(cls, v: str) -> str:
        role = Role.parse(v)
        if role is None:
            raise ValueError('Please select a valid role')
        return role.value

    @model_validator(mode='after')
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError('Passwords do not match')
        return self


_REQUIRED = {
    'name': 'Name is required',
    'email': 'Email is required',
    'password': 'Password is required',
    'confirm_password': 'Please confirm your password',
    'role': 'Please select a valid role',
}

# (field, pydantic error type) -> form message
_MESSAGES = {
    ('name', 'string_too_short'): 'Name must be at least 2 characters',
    ('name', 'string_too_long'): 'Name must be less than 100 characters',
    ('password', 'string_too_short'): 'Password must be at least 6 characters',
    ('email', 'value_error'): 'Invalid email address',
}


def _message(field: str, err: Dict[str, Any]) -> str:
    if err.get('type') == 'missing' or err.get('input') == '':
        if field in _REQUIRED:
            return _REQUIRED[field]
    if (field, err.get('type')) in _MESSAGES:
        return _MESSAGES[(field, err.get('type'))]
    msg = err.get('msg', 'Invalid value')
    # pydantic prefixes custom messages with "Value error, "
    if msg.startswith('Value error, '):
        msg = msg[len('Value error, '):]
    return msg


def _collect(exc: ValidationError) -> List[Tuple[str, str]]:
    errors = []
    for err in exc.errors():
        loc = err.get('loc') or ()
        field = str(loc[0]) if loc else 'confirm_password'
        errors.append((field, _message(field, err)))
    return errors


def validate_login(data: Dict[str, Any]) -> List[Tuple[str, str]]:
    """Return [] when the login form is valid, else (field, message) pairs."""
    try:
        LoginInput(**data)
    except ValidationError as exc:
        return _collect(exc)
    return []


def validate_register(data: Dict[str, Any]) -> List[Tuple[str, str]]:
    """Return [] when the registration form is valid, else (field, message) pairs."""
    try:
        RegisterInput(**data)
    except ValidationError as exc:
        return _collect(exc)
    return []
