"""Running-average rating columns shared by everything that can be reviewed."""

from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import Column, Integer, Numeric


class RateableMixin:
    """
    Adds ``rating_average``/``rating_count`` and the incremental update.

    Drivers (users), cars and products mix this in; the review service only
    depends on ``apply_rating_update``.
    """

    rating_average = Column(Numeric(3, 2), nullable=False, default=Decimal("0"))
    rating_count = Column(Integer, nullable=False, default=0)

    def apply_rating_update(self, rating: int) -> None:
        count = int(self.rating_count or 0)
        average = Decimal(self.rating_average or 0)
        new_average = (average * count + Decimal(rating)) / Decimal(count + 1)
        self.rating_average = new_average.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        self.rating_count = count + 1
