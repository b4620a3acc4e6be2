# src/clarity/repositories/category_repository.py
from typing import Dict, Iterable, List

from sqlalchemy import func
from sqlalchemy.orm import Session
import logging

from clarity.models.category import Category
from clarity.models.endpoint import Endpoint
from clarity.services.classification_tables import DEFAULT_CATEGORIES

logger = logging.getLogger(__name__)


class CategoryRepository:
    @staticmethod
    def exists(db: Session, slug: str) -> bool:
        return db.query(Category.slug).filter(Category.slug == slug).first() is not None

    @staticmethod
    def list_all(db: Session) -> List[Category]:
        return db.query(Category).order_by(Category.endpoint_count.desc(), Category.slug.asc()).all()

    @staticmethod
    def seed(db: Session, categories: Iterable[Dict[str, str]] = DEFAULT_CATEGORIES) -> int:
        """
        Insert missing taxonomy entries and refresh names/descriptions of
        existing ones. endpoint_count is left alone.
        """
        created = 0
        for entry in categories:
            category = db.get(Category, entry["slug"])
            if category is None:
                category = Category(slug=entry["slug"], endpoint_count=0)
                db.add(category)
                created += 1
            category.name = entry["name"]
            category.description = entry.get("description")
            category.icon = entry.get("icon")

        db.commit()
        logger.info("Seeded categories (%d new)", created)
        return created

    @staticmethod
    def refresh_counts(db: Session) -> Dict[str, int]:
        """Set every category's endpoint_count to its number of active endpoints."""
        counts = dict(
            db.query(Endpoint.category, func.count(Endpoint.id))
            .filter(Endpoint.is_active.is_(True), Endpoint.category.isnot(None))
            .group_by(Endpoint.category)
            .all()
        )
        for category in db.query(Category).all():
            category.endpoint_count = counts.get(category.slug, 0)
        db.commit()
        logger.debug("Refreshed category counts: %s", counts)
        return counts
