"""
Management commands.

    python -m translation_api.cli seed [--admin-email E --admin-password P]
    python -m translation_api.cli generate --count 100000 --locales 3 --tags 5

``seed`` creates the base locales and tags (idempotent). ``generate`` fills
the store with synthetic translations for load testing.
"""

import argparse
import asyncio
import logging
import random
import sys
from datetime import datetime, timezone

from sqlalchemy import func, insert, select

from translation_api.auth import hash_password
from translation_api.config import settings
from translation_api.database import AsyncSessionLocal
from translation_api.middleware.logging import configure_logging
from translation_api.models import Locale, Tag, Translation, User, translation_tag
from translation_api.repositories import ReferenceRepository
from translation_api.services.cache_service import CacheService, cache_service

logger = logging.getLogger(__name__)

SEED_LOCALES = [("en", "English"), ("fr", "French"), ("es", "Spanish")]
SEED_TAGS = ["mobile", "desktop", "web"]

GENERATE_LOCALES = [
    ("en", "English"),
    ("fr", "French"),
    ("es", "Spanish"),
    ("de", "German"),
    ("it", "Italian"),
    ("pt", "Portuguese"),
    ("nl", "Dutch"),
    ("sv", "Swedish"),
    ("no", "Norwegian"),
    ("da", "Danish"),
]
GENERATE_TAGS = ["mobile", "desktop", "web", "api", "admin"]

BASE_KEYS = [
    "welcome", "goodbye", "hello", "thank_you", "please", "sorry", "yes", "no",
    "login", "logout", "register", "profile", "settings", "dashboard", "home",
    "about", "contact", "help", "support", "documentation", "tutorial", "guide",
    "error", "success", "warning", "info", "loading", "saving", "deleted", "updated",
    "create", "edit", "delete", "save", "cancel", "submit", "search", "filter",
    "sort", "asc", "desc", "page", "next", "previous", "first", "last", "total",
]

BATCH_SIZE = 1000


def title_case_key(key: str) -> str:
    """welcome_back_12 -> Welcome Back 12"""
    return key.replace("_", " ").title()


async def seed(session_factory=AsyncSessionLocal, admin_email=None, admin_password=None) -> dict:
    """Create the base locales and tags, and optionally a login user."""
    async with session_factory() as db:
        references = ReferenceRepository(db)
        for code, name in SEED_LOCALES:
            await references.get_or_create_locale(code, name)
        for name in SEED_TAGS:
            await references.get_or_create_tag(name)

        if admin_email and admin_password:
            existing = await db.scalar(select(User).where(User.email == admin_email))
            if existing is None:
                db.add(User(name="Admin", email=admin_email, hashed_password=hash_password(admin_password)))
                await db.commit()
                logger.info(f"Admin user created: {admin_email}")

        return await _summary(db)


async def generate(
    count: int,
    locale_count: int = 3,
    tag_count: int = 5,
    session_factory=AsyncSessionLocal,
    cache: CacheService | None = None,
    rng: random.Random | None = None,
) -> dict:
    """
    Bulk-insert ``count`` synthetic translations spread over ``locale_count``
    locales, each carrying 1-3 of the first ``tag_count`` tags.

    Keys are ``<base>_<n>`` with ``n`` starting after the highest existing
    translation id, so repeated runs do not collide.
    """
    cache = cache or cache_service
    rng = rng or random.Random()

    async with session_factory() as db:
        references = ReferenceRepository(db)
        locales = [
            await references.get_or_create_locale(code, name)
            for code, name in GENERATE_LOCALES[:locale_count]
        ]
        tags = [await references.get_or_create_tag(name) for name in GENERATE_TAGS[:tag_count]]
        locale_refs = [(locale.id, locale.code) for locale in locales]
        tag_ids = [tag.id for tag in tags]

        start = (await db.scalar(select(func.max(Translation.id))) or 0) + 1
        now = datetime.now(timezone.utc)

        rows = []
        for n in range(start, start + count):
            key = f"{rng.choice(BASE_KEYS)}_{n}"
            locale_id, code = rng.choice(locale_refs)
            rows.append(
                {
                    "key": key,
                    "locale_id": locale_id,
                    "content": f"{title_case_key(key)} in {code}",
                    "created_at": now,
                    "updated_at": now,
                }
            )
            if len(rows) >= BATCH_SIZE:
                await _insert_batch(db, rows, tag_ids, rng)
                rows = []
        if rows:
            await _insert_batch(db, rows, tag_ids, rng)

        await db.commit()
        logger.info(f"Generated {count} translations")

        for _, code in locale_refs:
            await cache.forget(cache.export_key(code))

        return await _summary(db)


async def _insert_batch(db, rows: list[dict], tag_ids: list[int], rng: random.Random) -> None:
    result = await db.execute(insert(Translation).returning(Translation.id), rows)
    new_ids = result.scalars().all()
    if not tag_ids:
        return

    edges = []
    for translation_id in new_ids:
        picked = rng.sample(tag_ids, rng.randint(1, min(3, len(tag_ids))))
        edges.extend({"translation_id": translation_id, "tag_id": tag_id} for tag_id in picked)
    await db.execute(insert(translation_tag), edges)


async def _summary(db) -> dict:
    return {
        "locales": await db.scalar(select(func.count(Locale.id))),
        "tags": await db.scalar(select(func.count(Tag.id))),
        "translations": await db.scalar(
            select(func.count(Translation.id)).where(Translation.is_live)
        ),
    }


def _print_summary(summary: dict) -> None:
    print("Summary:")
    print(f"   - Locales: {summary['locales']}")
    print(f"   - Tags: {summary['tags']}")
    print(f"   - Translations: {summary['translations']}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="translation-api", description="Translation store management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    seed_parser = subparsers.add_parser("seed", help="Create base locales and tags")
    seed_parser.add_argument("--admin-email", help="Also create a login user with this email")
    seed_parser.add_argument("--admin-password", help="Password for --admin-email")

    generate_parser = subparsers.add_parser("generate", help="Generate test translations for load testing")
    generate_parser.add_argument("--count", type=int, default=100000, help="Number of translations to generate")
    generate_parser.add_argument(
        "--locales", type=int, default=3, choices=range(1, len(GENERATE_LOCALES) + 1),
        metavar=f"1-{len(GENERATE_LOCALES)}", help="Number of locales to use",
    )
    generate_parser.add_argument(
        "--tags", type=int, default=5, choices=range(1, len(GENERATE_TAGS) + 1),
        metavar=f"1-{len(GENERATE_TAGS)}", help="Number of tags to use",
    )
    generate_parser.add_argument("--seed", type=int, help="Random seed for reproducible data")
    return parser


async def _run(args) -> dict:
    if args.command == "seed":
        return await seed(admin_email=args.admin_email, admin_password=args.admin_password)

    await cache_service.backend.connect()
    try:
        return await generate(
            count=args.count,
            locale_count=args.locales,
            tag_count=args.tags,
            rng=random.Random(args.seed),
        )
    finally:
        await cache_service.backend.disconnect()


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "generate" and args.count < 0:
        parser.error("--count must not be negative")
    if args.command == "seed" and bool(args.admin_email) != bool(args.admin_password):
        parser.error("--admin-email and --admin-password must be given together")

    configure_logging(settings.log_level, settings.log_json)
    summary = asyncio.run(_run(args))
    _print_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
