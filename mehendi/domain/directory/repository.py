"""Directory repository - user and design lookups consumed by other domains"""

from typing import Optional

from sqlalchemy.orm import Session

from ...enums import UserRole
from ...models import Design, User


class UserDirectory:
    """Identity and eligibility lookups for users and artists"""

    @staticmethod
    def find_user_by_id(db: Session, user_id: str) -> Optional[User]:
        """Get a user by ID"""
        if not user_id:
            return None
        return db.get(User, user_id)

    @staticmethod
    def find_active_profile_complete_artist_by_id(db: Session, artist_id: str) -> Optional[User]:
        """Get an artist that can currently be booked"""
        if not artist_id:
            return None
        return (
            db.query(User)
            .filter(
                User.id == artist_id,
                User.role == UserRole.ARTIST.value,
                User.is_active.is_(True),
                User.is_profile_complete.is_(True),
            )
            .first()
        )


class DesignCatalog:
    """Design lookups"""

    @staticmethod
    def find_design_by_id(db: Session, design_id: str) -> Optional[Design]:
        """Get a design by ID"""
        if not design_id:
            return None
        return db.get(Design, design_id)
