"""Car and car document data access."""

from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from ..models.car import Car, CarDocument
from .base_repository import BaseRepository


class CarRepository(BaseRepository[Car]):
    def __init__(self, db: Session):
        super().__init__(db, Car)

    def get_with_documents(self, car_id: str) -> Optional[Car]:
        query = (
            self._build_query().options(selectinload(Car.documents)).filter(Car.id == car_id)
        )
        results = self._execute_query(query)
        return results[0] if results else None

    def set_availability_status(self, car_id: str, status: str) -> Optional[Car]:
        return self.update(car_id, availability_status=status)


class CarDocumentRepository(BaseRepository[CarDocument]):
    def __init__(self, db: Session):
        super().__init__(db, CarDocument)

    def list_dated(self) -> List[CarDocument]:
        """Every document with an expiry date, with its car loaded."""
        query = (
            self._build_query()
            .options(selectinload(CarDocument.car))
            .filter(CarDocument.expiry_date.isnot(None))
            .order_by(CarDocument.expiry_date.asc())
        )
        return self._execute_query(query)
