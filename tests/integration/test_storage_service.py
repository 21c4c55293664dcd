"""
Tests for the storage allocator against a real SQLite database.
"""
from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import pressing_order, run
from constants import OrderStatus
from db import transaction
from errors import CapacityExhaustedError, NumberRangeExhaustedError, ValidationError
from models import ActiveAllocation, Rack
from repositories import storage_repository
from schemas import OrderUpdate
from services import orders_service, storage_service
from services.storage_service import RackLayout


def _rack(rack_number):
    with transaction() as session:
        racks = {rack.rack_number: rack for rack in storage_repository.fetch_all_racks(session)}
        return racks[rack_number]


def _allocation_count():
    with transaction() as session:
        return session.query(ActiveAllocation).count()


def _unallocated_order_ids(count):
    """Create orders with explicit numbers so nothing is allocated for them yet."""
    return [
        run(orders_service.create_order("user-1", pressing_order(1, order_number=9000 + i))).id
        for i in range(count)
    ]


class TestAllocate:
    def test_prefers_least_used_rack(self, seed):
        seed((1, 10, 1, 5), (2, 10, 6, 10))
        first, second = _unallocated_order_ids(2)

        a = storage_service.allocate_storage(3, first)
        b = storage_service.allocate_storage(2, second)

        assert a.pickup_number == 1
        assert b.pickup_number == 6
        assert _rack(1).used_capacity == 3
        assert _rack(2).used_capacity == 2

    def test_capacity_exhausted_when_nothing_fits(self, seed):
        seed((1, 10, 1, 5))
        (order_id,) = _unallocated_order_ids(1)

        with pytest.raises(CapacityExhaustedError):
            storage_service.allocate_storage(11, order_id)

        assert _rack(1).used_capacity == 0
        assert _allocation_count() == 0

    def test_number_range_exhausted_rolls_back(self, seed):
        seed((1, 100, 1, 2))
        order_ids = _unallocated_order_ids(3)

        storage_service.allocate_storage(1, order_ids[0])
        storage_service.allocate_storage(1, order_ids[1])
        with pytest.raises(NumberRangeExhaustedError):
            storage_service.allocate_storage(1, order_ids[2])

        assert _rack(1).used_capacity == 2
        assert _allocation_count() == 2

    def test_negative_garment_count_rejected(self, seed):
        seed((1, 10, 1, 5))
        (order_id,) = _unallocated_order_ids(1)

        with pytest.raises(ValidationError):
            storage_service.allocate_storage(-1, order_id)

    def test_concurrent_allocations_get_distinct_numbers(self, seed):
        """N free numbers and N+1 callers: N succeed with distinct numbers, one fails."""
        seed((1, 100, 1, 5))
        order_ids = _unallocated_order_ids(6)

        def _attempt(order_id):
            try:
                return storage_service.allocate_storage(1, order_id)
            except NumberRangeExhaustedError as exc:
                return exc

        with ThreadPoolExecutor(max_workers=6) as pool:
            results = list(pool.map(_attempt, order_ids))

        numbers = [r.pickup_number for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, NumberRangeExhaustedError)]
        assert sorted(numbers) == [1, 2, 3, 4, 5]
        assert len(failures) == 1
        assert _rack(1).used_capacity == 5


class TestRelease:
    def test_release_restores_capacity_and_is_idempotent(self, seed):
        seed((1, 50, 1, 10))
        order = run(orders_service.create_order("user-1", pressing_order(13)))
        assert _rack(1).used_capacity == 13

        assert storage_service.release_order(order.id) is True
        assert storage_service.release_order(order.id) is False

        assert _rack(1).used_capacity == 0
        assert _allocation_count() == 0

    def test_release_of_unallocated_order_is_a_no_op(self, seed):
        seed((1, 50, 1, 10))
        (order_id,) = _unallocated_order_ids(1)

        assert storage_service.release_order(order_id) is False
        assert storage_service.release_order("missing") is False

    def test_released_number_is_reused(self, seed):
        seed((1, 50, 1, 10))
        first = run(orders_service.create_order("user-1", pressing_order(2)))
        storage_service.release_order(first.id)

        second = run(orders_service.create_order("user-1", pressing_order(2)))

        assert second.order_number == first.order_number == 1


class TestSeedAndSummary:
    def test_seeding_skips_existing_rack_numbers(self, seed):
        assert seed((1, 50, 1, 10), (2, 50, 11, 20)) == 2
        assert seed((1, 50, 1, 10)) == 0

    def test_overlapping_ranges_rejected(self, seed):
        seed((1, 50, 1, 10))

        with pytest.raises(ValidationError):
            seed((2, 50, 5, 15))

    def test_overlap_within_one_batch_rejected(self, database):
        with pytest.raises(ValidationError):
            storage_service.seed_racks(
                [RackLayout(1, 10, 1, 10), RackLayout(2, 10, 10, 20)]
            )
        with transaction() as session:
            assert session.query(Rack).count() == 0

    def test_summary_totals(self, seed):
        seed((1, 40, 1, 10), (2, 60, 11, 20))
        run(orders_service.create_order("user-1", pressing_order(25)))

        summary = run(storage_service.get_storage_summary())

        assert summary.total_capacity == 100
        assert summary.used_capacity == 25
        assert summary.free_capacity == 75
        assert summary.usage_percentage == 25.0
        assert [rack.rack_number for rack in summary.racks] == [1, 2]


class TestAllocationInvariant:
    def test_used_capacity_tracks_active_orders(self, seed):
        seed((1, 30, 1, 10), (2, 30, 11, 20))
        quantities = [7, 3, 12, 5, 9]
        orders = [run(orders_service.create_order("user-1", pressing_order(q))) for q in quantities]
        run(orders_service.update_order(orders[2].id, "user-1", OrderUpdate(status=OrderStatus.DELIVERED)))

        active = [order for i, order in enumerate(orders) if i != 2]
        assert _rack(1).used_capacity + _rack(2).used_capacity == sum(
            order.items.quantity for order in active
        )
        with transaction() as session:
            numbers = [a.pickup_number for a in session.query(ActiveAllocation)]
        assert len(numbers) == len(set(numbers)) == len(active)
