from .auth import LoginRequest, Token, UserOut
from .translation import (
    Envelope,
    LocaleOut,
    TagOut,
    TranslationCreate,
    TranslationResponse,
    TranslationUpdate,
)

__all__ = [
    "Envelope",
    "LocaleOut",
    "LoginRequest",
    "TagOut",
    "Token",
    "TranslationCreate",
    "TranslationResponse",
    "TranslationUpdate",
    "UserOut",
]
