"""
Tests for the item store.
"""
from decimal import Decimal

import pytest

from db import transaction
from errors import ItemNotFoundError
from services import items_service


class TestItemStore:
    def test_create_and_fetch(self, database):
        with transaction() as session:
            pressing_id = items_service.create_pressing_item(session, 13, Decimal(154))
            cleaning_id = items_service.create_cleaning_item(session, "Suit", 1, Decimal(20))

        with transaction() as session:
            pressing = items_service.get_pressing_item(session, pressing_id)
            cleaning = items_service.get_cleaning_item(session, cleaning_id)
            assert (pressing.quantity, pressing.total) == (13, Decimal(154))
            assert (cleaning.name, cleaning.quantity) == ("Suit", 1)

    def test_batch_lookup_skips_unknown_ids(self, database):
        with transaction() as session:
            first = items_service.create_cleaning_item(session, "Shirt", 3, Decimal(15))
            second = items_service.create_cleaning_item(session, "Tie", 1, Decimal(4))

            found = items_service.get_cleaning_items(session, [first, second, "missing"])

            assert set(found) == {first, second}
            assert items_service.get_pressing_items(session, []) == {}

    def test_missing_items_raise(self, database):
        with transaction() as session:
            with pytest.raises(ItemNotFoundError):
                items_service.get_pressing_item(session, "missing")
            with pytest.raises(ItemNotFoundError):
                items_service.get_cleaning_item(session, "missing")

    def test_delete(self, database):
        with transaction() as session:
            item_id = items_service.create_pressing_item(session, 2, Decimal(28))

        with transaction() as session:
            items_service.delete_pressing_item(session, item_id)
            with pytest.raises(ItemNotFoundError):
                items_service.delete_pressing_item(session, item_id)
            with pytest.raises(ItemNotFoundError):
                items_service.delete_cleaning_item(session, item_id)
