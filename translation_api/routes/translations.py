"""
Translation Routes (prefix: /api/v1)

    POST   /translations                 create a translation
    GET    /translations/search          filtered, paginated listing
    GET    /translations/export          {key: content} map for one locale
    GET    /translations/{id}            single translation
    PUT    /translations/{id}            partial update
    DELETE /translations/{id}            soft delete

``search`` and ``export`` are declared before ``/{id}`` so they are not
shadowed by the id route.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from translation_api.auth import get_current_user
from translation_api.config import settings
from translation_api.database import get_db
from translation_api.exceptions import NotFoundError, ValidationError
from translation_api.middleware.rate_limit import limiter
from translation_api.models import Translation
from translation_api.repositories import ReferenceRepository, TranslationRepository
from translation_api.schemas import Envelope, TranslationCreate, TranslationResponse, TranslationUpdate
from translation_api.services.cache_service import CacheService, get_cache_service
from translation_api.utils.pagination import PageResponse, PaginationParams

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/translations",
    tags=["Translations"],
    dependencies=[Depends(get_current_user)],
)


def get_translation_repository(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
) -> TranslationRepository:
    return TranslationRepository(db, cache)


def get_reference_repository(db: AsyncSession = Depends(get_db)) -> ReferenceRepository:
    return ReferenceRepository(db)


async def _get_or_404(repo: TranslationRepository, translation_id: int) -> Translation:
    translation = await repo.find_by_id(translation_id)
    if translation is None:
        raise NotFoundError("Translation", translation_id)
    return translation


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Envelope[TranslationResponse])
@limiter.limit(settings.rate_limit_default)
async def create_translation(
    request: Request,
    payload: TranslationCreate,
    repo: TranslationRepository = Depends(get_translation_repository),
):
    translation = await repo.create(payload.model_dump())
    return Envelope[TranslationResponse](data=TranslationResponse.model_validate(translation))


@router.get("/search", response_model=Envelope[PageResponse[TranslationResponse]])
@limiter.limit(settings.rate_limit_default)
async def search_translations(
    request: Request,
    key: str | None = Query(None, description="Substring of the key (case-sensitive)"),
    content: str | None = Query(None, description="Substring of the content (case-sensitive)"),
    locale: str | None = Query(None, description="Exact locale code"),
    tag: str | None = Query(None, description="Exact tag name"),
    pagination: PaginationParams = Depends(),
    repo: TranslationRepository = Depends(get_translation_repository),
):
    page = await repo.search(
        {
            "key": key,
            "content": content,
            "locale": locale,
            "tag": tag,
            "per_page": pagination.per_page,
            "page": pagination.page,
        }
    )
    return Envelope[PageResponse[TranslationResponse]](
        data=PageResponse[TranslationResponse].from_page(page, TranslationResponse.model_validate)
    )


@router.get("/export", response_model=Envelope[dict[str, str]])
@limiter.limit(settings.rate_limit_export)
async def export_translations(
    request: Request,
    response: Response,
    locale: str = Query(..., min_length=1, description="Locale code to export"),
    repo: TranslationRepository = Depends(get_translation_repository),
    references: ReferenceRepository = Depends(get_reference_repository),
):
    """Every live translation of ``locale`` as a flat key/content map, ordered by key."""
    if not await references.locale_code_exists(locale):
        raise ValidationError("The selected locale is invalid.", field="locale")

    exported = await repo.export_by_locale(locale)
    response.headers["Cache-Control"] = f"public, max-age={repo.cache.export_ttl}"
    return Envelope[dict[str, str]](data=exported)


@router.get("/{translation_id}", response_model=Envelope[TranslationResponse])
@limiter.limit(settings.rate_limit_default)
async def get_translation(
    request: Request,
    translation_id: int,
    repo: TranslationRepository = Depends(get_translation_repository),
):
    translation = await _get_or_404(repo, translation_id)
    return Envelope[TranslationResponse](data=TranslationResponse.model_validate(translation))


@router.put("/{translation_id}", response_model=Envelope[TranslationResponse])
@limiter.limit(settings.rate_limit_default)
async def update_translation(
    request: Request,
    translation_id: int,
    payload: TranslationUpdate,
    repo: TranslationRepository = Depends(get_translation_repository),
):
    existing = await _get_or_404(repo, translation_id)
    translation = await repo.update(existing, payload.model_dump(exclude_unset=True))
    return Envelope[TranslationResponse](data=TranslationResponse.model_validate(translation))


@router.delete("/{translation_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
@limiter.limit(settings.rate_limit_default)
async def delete_translation(
    request: Request,
    translation_id: int,
    repo: TranslationRepository = Depends(get_translation_repository),
):
    existing = await _get_or_404(repo, translation_id)
    if not await repo.delete(existing):
        # lost a race with another delete
        raise NotFoundError("Translation", translation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
