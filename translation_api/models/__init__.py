from .locale import Locale
from .tag import Tag
from .translation import Translation, TranslationState
from .translation_tags import translation_tag
from .user import User

__all__ = [
    "Locale",
    "Tag",
    "Translation",
    "TranslationState",
    "translation_tag",
    "User",
]
