import logging
from typing import Optional

from sqlalchemy.orm import Session

from .. import models, schemas
from .crud_service_category import get_or_create_categories

logger = logging.getLogger(__name__)


class CRUDProfile:
    def get(self, db: Session, profile_id: str) -> Optional[models.Profile]:
        return db.get(models.Profile, profile_id)

    def get_by_account_id(self, db: Session, account_id: str) -> Optional[models.Profile]:
        return db.query(models.Profile).filter(models.Profile.account_id == account_id).first()

    def upsert(
        self, db: Session, profile_in: schemas.ProfileUpsert, account_id: str
    ) -> tuple[models.Profile, bool]:
        """Create or replace the account's profile. Returns (profile, created).

        The linked service categories are replaced by the submitted set.
        """
        data = profile_in.model_dump(exclude={"services"})
        db_profile = self.get_by_account_id(db, account_id)
        created = db_profile is None
        if created:
            db_profile = models.Profile(account_id=account_id, **data)
            db.add(db_profile)
        else:
            for key, value in data.items():
                setattr(db_profile, key, value)
        db_profile.services = get_or_create_categories(db, profile_in.services)
        db.commit()
        db.refresh(db_profile)
        logger.info("Profile %s %s for account %s", db_profile.id, "created" if created else "updated", account_id)
        return db_profile, created

    def delete(self, db: Session, db_profile: models.Profile) -> None:
        profile_id = db_profile.id
        db.delete(db_profile)
        db.commit()
        logger.info("Profile %s deleted", profile_id)


profile = CRUDProfile()
