# Overview: Service-layer operations for product categories.

from __future__ import annotations

from ..extensions import db
from ..models import Category, Product
from ..validation import ConflictError, NotFoundError, ReferentialIntegrityError


def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if not category:
        raise NotFoundError("Category not found")
    return category


def _check_name_free(name: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Category).filter(db.func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    if q.first():
        raise ConflictError("Category name already exists")


def create_category(*, patch: dict) -> Category:
    """Create from a validated patch; blank names never get this far."""
    _check_name_free(patch["name"])
    category = Category(name=patch["name"], description=patch.get("description"))
    db.session.add(category)
    db.session.commit()
    return category


def update_category(*, category_id: int, patch: dict) -> Category:
    category = get_category(category_id)
    if "name" in patch and patch["name"] != category.name:
        _check_name_free(patch["name"], exclude_id=category.id)
    for k, v in patch.items():
        setattr(category, k, v)
    db.session.commit()
    return category


def delete_category(*, category_id: int) -> None:
    """Refused while an active product still belongs to the category."""
    category = get_category(category_id)

    in_use = db.session.query(Product).filter(
        Product.category_id == category.id,
        Product.is_active.is_(True),
    ).count()
    if in_use:
        raise ReferentialIntegrityError(
            f"Cannot delete category with {in_use} product(s). "
            "Please reassign or remove those products first."
        )

    # Soft-deleted products keep no link to a removed category
    db.session.query(Product).filter(Product.category_id == category.id).update(
        {Product.category_id: None}, synchronize_session="fetch"
    )
    db.session.delete(category)
    db.session.commit()
