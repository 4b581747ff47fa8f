# backend/tests/unit/services/test_schedule_catalog.py
"""Catalog reads through the cache, TTL expiry and write invalidation."""

from unittest.mock import Mock

import pytest

from clinicbook.core.exceptions import NotFoundException, ValidationException
from clinicbook.models.catalog import Service
from clinicbook.services.schedule_catalog import ScheduleCatalog, service_cache_key


def _change_behind_the_catalogs_back(db, service_id, **values):
    db.query(Service).filter(Service.id == service_id).update(values)
    db.commit()


class TestCachedReads:
    def test_reads_are_served_from_cache_until_ttl(self, db, catalog, clinic, clock):
        assert catalog.get_service("cleaning").duration_minutes == 30

        _change_behind_the_catalogs_back(db, "cleaning", duration_minutes=45)
        assert catalog.get_service("cleaning").duration_minutes == 30

        clock.advance(seconds=301)
        assert catalog.get_service("cleaning").duration_minutes == 45

    def test_write_is_visible_to_the_next_read(self, catalog, clinic):
        assert catalog.get_service("cleaning").price == "500.00"

        catalog.upsert_service("cleaning", "Teeth cleaning", 30, "650.00")

        assert catalog.get_service("cleaning").price == "650.00"

    def test_rule_update_changes_slots_immediately(self, catalog, availability, clinic):
        before = availability.get_available_slots(clinic.provider_id, clinic.day, "cleaning")

        catalog.upsert_schedule_rule(clinic.provider_id, 1, "09:00", "11:00")

        after = availability.get_available_slots(clinic.provider_id, clinic.day, "cleaning")
        assert len(before) == 14
        assert after == ["09:00", "09:30", "10:00", "10:30"]

    def test_failing_cache_falls_back_to_database(self, db, test_settings, clinic):
        broken = Mock()
        broken.get.side_effect = ConnectionError("redis down")
        catalog = ScheduleCatalog(db, cache=broken, config=test_settings)

        assert catalog.get_provider(clinic.provider_id).name == "Dr. Anika Mehta"

    def test_failing_cache_write_is_not_fatal(self, db, test_settings, clinic):
        flaky = Mock()
        flaky.get.return_value = None
        flaky.set.side_effect = ConnectionError("redis down")
        catalog = ScheduleCatalog(db, cache=flaky, config=test_settings)

        assert catalog.get_service("cleaning").duration_minutes == 30

    def test_works_without_a_cache(self, db, test_settings, clinic):
        catalog = ScheduleCatalog(db, cache=None, config=test_settings)

        assert catalog.get_rule(clinic.provider_id, 1).start_minutes == 9 * 60
        assert catalog.get_rule(clinic.provider_id, 2) is None

    def test_cached_value_shape(self, catalog, cache, clinic):
        catalog.get_service("cleaning")

        cached = cache.get(service_cache_key("cleaning"))
        assert cached["duration_minutes"] == 30
        assert cached["is_active"] is True


class TestCatalogWrites:
    def test_unknown_ids(self, catalog):
        with pytest.raises(NotFoundException):
            catalog.get_service("nope")
        with pytest.raises(NotFoundException):
            catalog.get_provider("nope")

    def test_schedule_for_unknown_provider(self, catalog):
        with pytest.raises(NotFoundException):
            catalog.upsert_schedule_rule("nobody", 1, "09:00", "17:00")

    @pytest.mark.parametrize("duration", [0, -30, 32])
    def test_service_duration_validation(self, catalog, duration):
        with pytest.raises(ValidationException):
            catalog.upsert_service("x", "X-ray", duration, "100")

    def test_negative_price(self, catalog):
        with pytest.raises(ValidationException):
            catalog.upsert_service("x", "X-ray", 30, "-1")

    @pytest.mark.parametrize(
        "window",
        [
            ("17:00", "09:00", None, None),
            ("09:00", "17:00", "12:00", None),
            ("09:00", "17:00", "08:00", "09:30"),
            ("09:02", "17:00", None, None),
        ],
    )
    def test_schedule_window_validation(self, catalog, clinic, window):
        start, end, break_start, break_end = window
        with pytest.raises(ValidationException):
            catalog.upsert_schedule_rule(
                clinic.provider_id, 3, start, end, break_start=break_start, break_end=break_end
            )

    def test_day_of_week_range(self, catalog, clinic):
        with pytest.raises(ValidationException):
            catalog.upsert_schedule_rule(clinic.provider_id, 7, "09:00", "17:00")

    def test_rule_round_trip(self, catalog, clinic):
        rule = catalog.get_rule(clinic.provider_id, 1).to_public()

        assert rule["start_time"] == "09:00"
        assert rule["break_start"] == "12:00"
        assert rule["break_end"] == "13:00"
