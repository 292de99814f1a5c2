from .reference_repository import ReferenceRepository
from .translation_repository import TranslationRepository

__all__ = ["ReferenceRepository", "TranslationRepository"]
