# SPDX-License-Identifier: MIT
"""Tests for the SQLAlchemy record store."""

import pytest
from sqlalchemy import text

from spot_pipeline.database import session_scope
from spot_pipeline.errors import StoreError


class TestSqlRecordStore:
    """Test SqlRecordStore reads and partial writes."""

    def test_read_page_orders_by_id(self, sql_store, insert_spots):
        insert_spots({"id": 2, "name": "Two"}, {"id": 1, "name": "One"}, {"id": 3, "name": "Three"})

        page = sql_store.read_page(0, 2)

        assert [r.id for r in page] == [1, 2]
        assert sql_store.read_page(2, 2)[0].name == "Three"
        assert sql_store.read_page(3, 2) == []

    def test_update_is_a_partial_merge(self, sql_store, insert_spots, load_spot, complete_spot_data):
        """Writing the ja locale leaves the en locale untouched."""
        insert_spots({**complete_spot_data, "name_ja": None, "description_ja": None})

        ok = sql_store.update_fields(1, {"name_ja": "姫路城", "description_ja": "日本の城です。"})

        assert ok is True
        stored = load_spot(1)
        assert stored.name_ja == "姫路城"
        assert stored.name_en == complete_spot_data["name_en"]
        assert stored.description_en == complete_spot_data["description_en"]
        assert stored.image_url == complete_spot_data["image_url"]

    def test_country_only_update_keeps_locales(self, sql_store, insert_spots, load_spot, complete_spot_data):
        insert_spots({**complete_spot_data, "country": None, "country_ja": None})

        assert sql_store.update_fields(1, {"country": "Japan"}) is True

        stored = load_spot(1)
        assert stored.country == "Japan"
        assert stored.country_ja is None
        assert stored.name_en == complete_spot_data["name_en"]
        assert stored.description_en == complete_spot_data["description_en"]

    def test_read_failure_raises_store_error(self, sql_store, db_factory):
        with session_scope(db_factory) as session:
            session.execute(text("DROP TABLE spots"))

        with pytest.raises(StoreError):
            sql_store.read_page(0, 10)

    def test_signed_year_is_stored(self, sql_store, insert_spots, load_spot):
        insert_spots({"id": 1, "name": "Stonehenge"})

        sql_store.update_fields(1, {"year": -2500})

        assert load_spot(1).year == -2500

    def test_unknown_id_returns_false(self, sql_store, insert_spots):
        insert_spots({"id": 1, "name": "One"})

        assert sql_store.update_fields(99, {"country": "Japan"}) is False

    def test_non_writable_field_raises(self, sql_store):
        with pytest.raises(ValueError, match="name"):
            sql_store.update_fields(1, {"name": "Renamed"})

    def test_empty_update_is_a_no_op(self, sql_store):
        assert sql_store.update_fields(1, {}) is True

    def test_count(self, sql_store, insert_spots):
        insert_spots({"id": 1, "name": "One"}, {"id": 2, "name": "Two"})

        assert sql_store.count() == 2
