from typing import Iterable, List

from sqlalchemy.orm import Session

from ..models.profile import ServiceCategory


def get_or_create_categories(db: Session, names: Iterable[str]) -> List[ServiceCategory]:
    """Return categories for ``names``, creating missing ones (not committed)."""
    wanted: List[str] = []
    for name in names:
        name = (name or "").strip()
        if name and name not in wanted:
            wanted.append(name)
    if not wanted:
        return []
    existing = {
        c.name: c for c in db.query(ServiceCategory).filter(ServiceCategory.name.in_(wanted)).all()
    }
    categories = []
    for name in wanted:
        category = existing.get(name)
        if category is None:
            category = ServiceCategory(name=name)
            db.add(category)
        categories.append(category)
    return categories
