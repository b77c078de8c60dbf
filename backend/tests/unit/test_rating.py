from decimal import Decimal

from marketplace.models.product import Product


def test_running_average_updates_incrementally():
    product = Product(name="Floor mats", price=Decimal("10"), rating_average=Decimal("0"), rating_count=0)
    product.apply_rating_update(5)
    assert product.rating_average == Decimal("5.00")
    assert product.rating_count == 1

    product.apply_rating_update(4)
    product.apply_rating_update(4)
    assert product.rating_count == 3
    assert product.rating_average == Decimal("4.33")


def test_average_rounds_half_up():
    product = Product(name="Wax", price=Decimal("3"), rating_average=Decimal("4.50"), rating_count=2)
    product.apply_rating_update(3)
    # (4.5 * 2 + 3) / 3 = 4.0
    assert product.rating_average == Decimal("4.00")
