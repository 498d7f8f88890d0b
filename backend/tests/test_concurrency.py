"""
Concurrency tests against a file-backed SQLite database.

Verifies:
- concurrent sales never oversell: exactly on-hand units succeed
- readers running alongside writers always see a consistent ledger
- the ledger audit is clean after the storm
"""

import threading

import pytest

from stocksense import create_app
from stocksense.config import TestConfig
from stocksense.errors import InsufficientStockError
from stocksense.extensions import db, get_services
from stocksense.permissions import Actor, Role
from stocksense.services import products_service

MANAGER = Actor(user_id=2, role=Role.MANAGER)
STAFF = Actor(user_id=3, role=Role.STAFF)


@pytest.fixture
def file_app(tmp_path):
    app = create_app(
        TestConfig,
        SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'concurrency.sqlite3'}",
        LEDGER_LOCK_TIMEOUT_SECONDS=30.0,
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


def _create_product(app, **fields):
    patch = {
        "sku": "CONC-001",
        "name": "Contended Item",
        "category": "General",
        "quantity": 10,
        "price_cents": 100,
        "reorder_point": 2,
    }
    patch.update(fields)
    with app.app_context():
        services = get_services()
        return products_service.create_product(
            services["store"], services["policy"], actor=MANAGER, patch=patch
        )


class TestConcurrentSales:

    def test_no_oversell(self, file_app):
        product = _create_product(file_app, quantity=10)
        outcomes = []
        outcomes_lock = threading.Lock()
        start = threading.Barrier(20)

        def worker():
            with file_app.app_context():
                manager = get_services()["sales"]
                start.wait()
                try:
                    manager.record_sale([{"product_id": product["id"], "quantity": 1}], actor=STAFF)
                    result = "ok"
                except InsufficientStockError:
                    result = "short"
            with outcomes_lock:
                outcomes.append(result)

        threads = [threading.Thread(target=worker) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert outcomes.count("ok") == 10
        assert outcomes.count("short") == 10

        with file_app.app_context():
            store = get_services()["store"]
            assert products_service.get_product(store, product["id"])["quantity"] == 0
            assert store.audit_stock() == []

    def test_readers_see_consistent_state(self, file_app):
        product = _create_product(file_app, quantity=40, price_cents=250)
        inconsistencies = []
        done = threading.Event()

        def seller():
            with file_app.app_context():
                manager = get_services()["sales"]
                for _ in range(20):
                    manager.record_sale([{"product_id": product["id"], "quantity": 2}], actor=STAFF)
            done.set()

        def reader():
            with file_app.app_context():
                engine = get_services()["analytics"]
                manager_actor = MANAGER
                while not done.is_set():
                    summary = engine.home_summary(actor=manager_actor)
                    sold_value = summary["today_revenue_cents"]
                    on_hand_value = summary["inventory_value_cents"]
                    # every unit is either still on hand or was sold at 250
                    if sold_value + on_hand_value != 40 * 250:
                        inconsistencies.append(summary)

        threads = [threading.Thread(target=seller)] + [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert inconsistencies == []
        with file_app.app_context():
            assert get_services()["store"].audit_stock() == []
