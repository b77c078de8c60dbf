"""Review data access."""

from sqlalchemy.orm import Session

from ..models.review import Review
from .base_repository import BaseRepository


class ReviewRepository(BaseRepository[Review]):
    def __init__(self, db: Session):
        super().__init__(db, Review)

    def exists_for(self, author_id: str, target_type: str, target_id: str) -> bool:
        return self.exists(author_id=author_id, target_type=target_type, target_id=target_id)
