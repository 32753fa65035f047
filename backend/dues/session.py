"""
Admin session.

There is one administrator, identified by a shared password. Logging in
issues a signed access token; every request carrying it gets an explicit
AdminSession that the permission layer and the dues service consult.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.conf import settings
from django.utils.crypto import constant_time_compare
from rest_framework_simplejwt.tokens import AccessToken
from rest_framework_simplejwt.utils import datetime_from_epoch

ADMIN_SUBJECT = 'admin'
ADMIN_ROLE = 'admin'


def check_admin_password(password):
    return constant_time_compare(password or '', settings.DUES_ADMIN_PASSWORD)


def issue_admin_token():
    token = AccessToken()
    token[settings.SIMPLE_JWT.get('USER_ID_CLAIM', 'user_id')] = ADMIN_SUBJECT
    token['role'] = ADMIN_ROLE
    return token


@dataclass(frozen=True)
class AdminSession:
    subject: str
    role: str
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @property
    def is_admin(self):
        return self.role == ADMIN_ROLE

    @classmethod
    def from_token(cls, token):
        iat, exp = token.get('iat'), token.get('exp')
        return cls(
            subject=str(token.get(settings.SIMPLE_JWT.get('USER_ID_CLAIM', 'user_id'), '')),
            role=token.get('role', ''),
            issued_at=datetime_from_epoch(iat) if iat else None,
            expires_at=datetime_from_epoch(exp) if exp else None,
        )

    @classmethod
    def from_request(cls, request):
        """Session for an authenticated request, None for anonymous ones."""
        token = getattr(request, 'auth', None)
        if token is None:
            return None
        return cls.from_token(token)
