from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from translation_api.models.translation import KEY_MAX_LENGTH

T = TypeVar("T")


class LocaleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str


class TagOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class TranslationCreate(BaseModel):
    key: str = Field(..., min_length=1, max_length=KEY_MAX_LENGTH, description="Translation key, e.g. 'welcome'.")
    locale_id: int = Field(..., description="Id of an existing locale.")
    content: str = Field(..., min_length=1, description="Translated text.")
    tags: list[int] | None = Field(None, description="Ids of existing tags.")


class TranslationUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    key: str | None = Field(None, min_length=1, max_length=KEY_MAX_LENGTH)
    content: str | None = Field(None, min_length=1)
    tags: list[int] | None = Field(None, description="Replaces the whole tag set; [] detaches all tags.")


class TranslationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    key: str
    content: str
    locale_id: int
    locale: LocaleOut
    tags: list[TagOut]
    created_at: datetime
    updated_at: datetime


class Envelope(BaseModel, Generic[T]):
    """Success wrapper shared by every JSON endpoint."""

    success: bool = True
    data: T
