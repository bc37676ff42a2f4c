"""
Tests for lifecycle_service: create, update, transition, and delete.

The central property checked throughout: after any successful
transition, an asset's status and owner equal the ``new_status`` and
``new_user_id`` of its latest history entry, and a failed transition
leaves both the asset and its history exactly as they were.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from asset_tracker.errors import (
    ConflictError,
    NotFoundError,
    StorageFailure,
    ValidationError,
)
from asset_tracker.models.asset import Asset
from asset_tracker.services import (
    asset_store,
    history_service,
    lifecycle_service,
    query_service,
)
from asset_tracker.services.lifecycle_service import UNSET, AssetPatch


def _disk_error(*args, **kwargs):
    raise OperationalError("INSERT ...", {}, Exception("disk I/O error"))


def _reload(db_session, asset_id):
    db_session.expire_all()
    return db_session.get(Asset, asset_id)


class TestCreateAsset:
    """Tests for registering new assets."""

    def test_defaults_to_unallocated_without_owner(self, db_session):
        result = lifecycle_service.create_asset(
            name="Dock", category="other", serial_number="DK-1"
        )
        assert result.asset.status == "unallocated"
        assert result.owner is None
        assert result.asset.purchase_price is None

    def test_available_laptop_without_owner(self, db_session):
        """A new available asset has no owner and no price unless given."""
        result = lifecycle_service.create_asset(
            name="Test Laptop",
            category="laptop",
            serial_number="LP001",
            status="available",
        )
        data = result.to_dict()
        assert data["status"] == "available"
        assert data["allocated_user"] is None
        assert data["purchase_price"] is None

    def test_creation_writes_no_history(self, db_session, make_user):
        owner = make_user()
        result = lifecycle_service.create_asset(
            name="Phone",
            category="phone",
            serial_number="PH-1",
            status="allocated",
            allocated_to_user_id=owner.id,
        )
        assert result.owner.id == owner.id
        assert history_service.count_for_asset(db_session, result.asset.id) == 0

    def test_unknown_initial_owner_raises_not_found(self, db_session):
        with pytest.raises(NotFoundError) as excinfo:
            lifecycle_service.create_asset(
                name="Phone",
                category="phone",
                serial_number="PH-2",
                allocated_to_user_id=999,
            )
        assert excinfo.value.entity == "user"
        assert excinfo.value.entity_id == 999
        assert query_service.get_assets() == []

    def test_duplicate_serial_number_is_a_conflict(self, db_session, make_asset):
        make_asset(serial_number="DUP-1")
        with pytest.raises(ConflictError) as excinfo:
            make_asset(serial_number="DUP-1")
        assert excinfo.value.field == "serial_number"
        assert len(query_service.get_assets()) == 1

    @pytest.mark.parametrize("category", ["", "desk", None])
    def test_invalid_category_rejected(self, db_session, category):
        with pytest.raises(ValidationError):
            lifecycle_service.create_asset(
                name="Thing", category=category, serial_number="X-1"
            )

    def test_invalid_status_rejected(self, db_session):
        with pytest.raises(ValidationError):
            lifecycle_service.create_asset(
                name="Thing",
                category="other",
                serial_number="X-2",
                status="lost",
            )

    def test_blank_name_rejected(self, db_session):
        with pytest.raises(ValidationError):
            lifecycle_service.create_asset(
                name="   ", category="other", serial_number="X-3"
            )

    def test_purchase_date_accepts_iso_strings(self, db_session, make_asset):
        asset = make_asset(purchase_date="2024-03-15T10:00:00Z")
        assert asset.purchase_date.isoformat() == "2024-03-15"


class TestPurchasePrice:
    """Prices are stored as two-place decimals."""

    @pytest.mark.parametrize(
        "given, expected",
        [
            (19.99, Decimal("19.99")),
            ("1234.5", Decimal("1234.50")),
            (Decimal("10.005"), Decimal("10.01")),
            (0, Decimal("0.00")),
        ],
    )
    def test_price_is_quantized(self, db_session, make_asset, given, expected):
        asset = make_asset(purchase_price=given)
        assert _reload(db_session, asset.id).purchase_price == expected

    @pytest.mark.parametrize(
        "bad", [-1, "-0.01", "abc", True, float("nan"), float("inf"), "1e12"]
    )
    def test_bad_prices_rejected(self, db_session, make_asset, bad):
        with pytest.raises(ValidationError):
            make_asset(purchase_price=bad)

    def test_price_serialized_as_float(self, db_session):
        result = lifecycle_service.create_asset(
            name="Monitor",
            category="monitor",
            serial_number="MN-1",
            purchase_price="249.00",
        )
        assert result.to_dict()["purchase_price"] == 249.0


class TestTransition:
    """Tests for status transitions and their history entries."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_session, make_user, make_asset):
        self.session = db_session
        self.admin = make_user(name="Admin", role="admin")
        self.u1 = make_user(name="U1")
        self.u2 = make_user(name="U2")
        self.asset = make_asset(
            name="Test Laptop", serial_number="LP001", status="available"
        )

    def _history(self):
        return history_service.list_by_asset(self.session, self.asset.id)

    def test_allocate_records_one_entry(self):
        result = lifecycle_service.transition(
            self.asset.id,
            "allocated",
            acting_user_id=self.admin.id,
            new_owner_id=self.u1.id,
        )
        assert result.asset.status == "allocated"
        assert result.asset.allocated_to_user_id == self.u1.id
        assert result.owner.id == self.u1.id

        entries = self._history()
        assert len(entries) == 1
        entry = entries[0]
        assert entry.previous_status == "available"
        assert entry.new_status == "allocated"
        assert entry.previous_user_id is None
        assert entry.new_user_id == self.u1.id
        assert entry.changed_by_user_id == self.admin.id

    def test_unknown_new_owner_changes_nothing(self):
        with pytest.raises(NotFoundError) as excinfo:
            lifecycle_service.transition(
                self.asset.id,
                "allocated",
                acting_user_id=self.admin.id,
                new_owner_id=999,
            )
        assert excinfo.value.entity == "user"
        asset = _reload(self.session, self.asset.id)
        assert asset.status == "available"
        assert asset.allocated_to_user_id is None
        assert self._history() == []

    def test_reassignment_captures_previous_owner(self):
        lifecycle_service.transition(
            self.asset.id,
            "allocated",
            acting_user_id=self.admin.id,
            new_owner_id=self.u1.id,
        )
        lifecycle_service.transition(
            self.asset.id,
            "allocated",
            acting_user_id=self.admin.id,
            new_owner_id=self.u2.id,
        )
        latest = history_service.latest_for_asset(self.session, self.asset.id)
        assert latest.previous_user_id == self.u1.id
        assert latest.new_user_id == self.u2.id

    def test_missing_asset_checked_before_actor(self):
        with pytest.raises(NotFoundError) as excinfo:
            lifecycle_service.transition(
                999, "available", acting_user_id=998, new_owner_id=997
            )
        assert excinfo.value.entity == "asset"
        assert excinfo.value.entity_id == 999

    def test_missing_actor_checked_before_owner(self):
        with pytest.raises(NotFoundError) as excinfo:
            lifecycle_service.transition(
                self.asset.id, "allocated", acting_user_id=998, new_owner_id=997
            )
        assert excinfo.value.entity == "user"
        assert excinfo.value.entity_id == 998

    def test_acting_user_is_required(self):
        with pytest.raises(ValidationError):
            lifecycle_service.transition(
                self.asset.id, "available", acting_user_id=None
            )

    def test_invalid_status_writes_nothing(self):
        with pytest.raises(ValidationError):
            lifecycle_service.transition(
                self.asset.id, "stolen", acting_user_id=self.admin.id
            )
        assert self._history() == []

    def test_omitted_owner_clears_it(self):
        lifecycle_service.transition(
            self.asset.id,
            "allocated",
            acting_user_id=self.admin.id,
            new_owner_id=self.u1.id,
        )
        result = lifecycle_service.transition(
            self.asset.id, "under-repair", acting_user_id=self.admin.id
        )
        assert result.asset.allocated_to_user_id is None
        assert result.owner is None

    def test_allocated_without_owner_is_permitted(self):
        """Status and owner are not validated against each other."""
        result = lifecycle_service.transition(
            self.asset.id, "allocated", acting_user_id=self.admin.id
        )
        assert result.asset.status == "allocated"
        assert result.owner is None
        assert query_service.check_consistency(self.asset.id)

    def test_available_with_owner_is_permitted(self):
        result = lifecycle_service.transition(
            self.asset.id,
            "available",
            acting_user_id=self.admin.id,
            new_owner_id=self.u1.id,
        )
        assert result.asset.status == "available"
        assert result.owner.id == self.u1.id

    def test_notes_stored_on_entry(self):
        lifecycle_service.transition(
            self.asset.id,
            "under-repair",
            acting_user_id=self.admin.id,
            notes="  cracked screen ",
        )
        assert self._history()[0].notes == "cracked screen"

    def test_state_matches_latest_entry_after_every_step(self):
        steps = [
            ("allocated", self.u1.id),
            ("under-repair", None),
            ("available", None),
            ("allocated", self.u2.id),
            ("allocated", self.u1.id),
            ("retired", None),
        ]
        for count, (status, owner_id) in enumerate(steps, start=1):
            lifecycle_service.transition(
                self.asset.id,
                status,
                acting_user_id=self.admin.id,
                new_owner_id=owner_id,
            )
            asset = _reload(self.session, self.asset.id)
            latest = history_service.latest_for_asset(self.session, self.asset.id)
            assert (asset.status, asset.allocated_to_user_id) == (
                latest.new_status,
                latest.new_user_id,
            )
            assert len(self._history()) == count

    def test_existing_entries_never_change(self):
        lifecycle_service.transition(
            self.asset.id,
            "allocated",
            acting_user_id=self.admin.id,
            new_owner_id=self.u1.id,
        )
        before = [entry.to_dict() for entry in self._history()]

        lifecycle_service.transition(
            self.asset.id, "available", acting_user_id=self.admin.id
        )
        with pytest.raises(NotFoundError):
            lifecycle_service.transition(
                self.asset.id, "allocated", acting_user_id=12345
            )

        self.session.expire_all()
        after = [entry.to_dict() for entry in self._history()]
        assert after[: len(before)] == before
        assert len(after) == len(before) + 1

    def test_previous_status_chains(self):
        for status in ("allocated", "available", "retired"):
            lifecycle_service.transition(
                self.asset.id, status, acting_user_id=self.admin.id
            )
        entries = self._history()
        assert [e.previous_status for e in entries] == [
            "available",
            "allocated",
            "available",
        ]
        for earlier, later in zip(entries, entries[1:]):
            assert later.previous_status == earlier.new_status
            assert later.previous_user_id == earlier.new_user_id


class TestTransitionAtomicity:
    """A storage failure mid-transition rolls back every write."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_session, make_user, make_asset):
        self.session = db_session
        self.admin = make_user(role="admin")
        self.owner = make_user()
        self.asset = make_asset(status="available")

    def _assert_untouched(self):
        asset = _reload(self.session, self.asset.id)
        assert asset.status == "available"
        assert asset.allocated_to_user_id is None
        assert history_service.count_for_asset(self.session, self.asset.id) == 0

    def test_history_append_failure(self, monkeypatch):
        monkeypatch.setattr(history_service, "append", _disk_error)
        with pytest.raises(StorageFailure):
            lifecycle_service.transition(
                self.asset.id,
                "allocated",
                acting_user_id=self.admin.id,
                new_owner_id=self.owner.id,
            )
        self._assert_untouched()

    def test_asset_update_failure_discards_appended_entry(self, monkeypatch):
        """The entry is already flushed when the asset write fails."""
        monkeypatch.setattr(asset_store, "update", _disk_error)
        with pytest.raises(StorageFailure):
            lifecycle_service.transition(
                self.asset.id,
                "allocated",
                acting_user_id=self.admin.id,
                new_owner_id=self.owner.id,
            )
        monkeypatch.undo()
        self._assert_untouched()

    def test_session_usable_after_failure(self, monkeypatch):
        monkeypatch.setattr(history_service, "append", _disk_error)
        with pytest.raises(StorageFailure):
            lifecycle_service.transition(
                self.asset.id, "retired", acting_user_id=self.admin.id
            )
        monkeypatch.undo()

        result = lifecycle_service.transition(
            self.asset.id, "retired", acting_user_id=self.admin.id
        )
        assert result.asset.status == "retired"
        assert history_service.count_for_asset(self.session, self.asset.id) == 1


class TestUpdateAsset:
    """Tests for partial field edits."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_session, make_user, make_asset):
        self.session = db_session
        self.admin = make_user(role="admin")
        self.owner = make_user()
        self.asset = make_asset(
            name="Old Name", brand="Dell", notes="spare", status="available"
        )

    def test_only_set_fields_change(self):
        result = lifecycle_service.update_asset(
            self.asset.id, AssetPatch(name="New Name")
        )
        assert result.asset.name == "New Name"
        assert result.asset.brand == "Dell"
        assert result.asset.notes == "spare"

    def test_none_clears_nullable_field(self):
        result = lifecycle_service.update_asset(
            self.asset.id, AssetPatch(notes=None)
        )
        assert result.asset.notes is None
        assert result.asset.brand == "Dell"

    def test_unset_is_distinct_from_none(self):
        patch = AssetPatch(brand=None)
        assert patch.notes is UNSET
        assert patch.changes() == {"brand": None}

    def test_clearing_required_field_rejected(self):
        with pytest.raises(ValidationError):
            lifecycle_service.update_asset(self.asset.id, AssetPatch(name=None))

    def test_from_mapping_rejects_unknown_keys(self):
        with pytest.raises(ValidationError):
            AssetPatch.from_mapping({"name": "x", "colour": "red"})

    def test_from_mapping_keeps_explicit_null(self):
        patch = AssetPatch.from_mapping({"notes": None})
        assert patch.changes() == {"notes": None}

    def test_missing_asset_raises_not_found(self):
        with pytest.raises(NotFoundError) as excinfo:
            lifecycle_service.update_asset(999, AssetPatch(name="x"))
        assert excinfo.value.entity == "asset"

    def test_unknown_owner_raises_not_found(self):
        with pytest.raises(NotFoundError) as excinfo:
            lifecycle_service.update_asset(
                self.asset.id, AssetPatch(allocated_to_user_id=999)
            )
        assert excinfo.value.entity == "user"

    def test_duplicate_serial_is_conflict(self, make_asset):
        other = make_asset(serial_number="TAKEN-1")
        with pytest.raises(ConflictError):
            lifecycle_service.update_asset(
                self.asset.id, AssetPatch(serial_number=other.serial_number)
            )

    def test_state_edit_bypasses_history(self):
        """Plain edits may change status and owner without an entry."""
        lifecycle_service.transition(
            self.asset.id, "under-repair", acting_user_id=self.admin.id
        )
        result = lifecycle_service.update_asset(
            self.asset.id,
            AssetPatch(status="allocated", allocated_to_user_id=self.owner.id),
        )
        assert result.asset.status == "allocated"
        assert history_service.count_for_asset(self.session, self.asset.id) == 1
        assert not query_service.check_consistency(self.asset.id)

    def test_strict_audit_trail_rejects_state_edits(self, app):
        app.config["STRICT_AUDIT_TRAIL"] = True
        with pytest.raises(ValidationError):
            lifecycle_service.update_asset(
                self.asset.id, AssetPatch(status="retired")
            )
        with pytest.raises(ValidationError):
            lifecycle_service.update_asset(
                self.asset.id, AssetPatch(allocated_to_user_id=None)
            )
        result = lifecycle_service.update_asset(
            self.asset.id, AssetPatch(name="Allowed")
        )
        assert result.asset.name == "Allowed"
        assert _reload(self.session, self.asset.id).status == "available"

    def test_updated_at_strictly_increases(self):
        stamps = [_reload(self.session, self.asset.id).updated_at]
        lifecycle_service.update_asset(self.asset.id, AssetPatch())
        stamps.append(_reload(self.session, self.asset.id).updated_at)
        lifecycle_service.update_asset(self.asset.id, AssetPatch())
        stamps.append(_reload(self.session, self.asset.id).updated_at)
        lifecycle_service.transition(
            self.asset.id, "retired", acting_user_id=self.admin.id
        )
        stamps.append(_reload(self.session, self.asset.id).updated_at)
        assert all(a < b for a, b in zip(stamps, stamps[1:]))


class TestDeleteAsset:
    """Tests for permanent deletion."""

    def test_missing_asset_returns_false(self, db_session):
        assert lifecycle_service.delete_asset(424242) is False

    def test_second_delete_returns_false(self, db_session, make_asset):
        asset = make_asset()
        assert lifecycle_service.delete_asset(asset.id) is True
        assert lifecycle_service.delete_asset(asset.id) is False

    @pytest.mark.parametrize("entry_count", [0, 1, 3])
    def test_history_removed_with_asset(
        self, db_session, make_user, make_asset, entry_count
    ):
        admin = make_user(role="admin")
        asset = make_asset()
        keep = make_asset()
        lifecycle_service.transition(keep.id, "available", acting_user_id=admin.id)
        for _ in range(entry_count):
            lifecycle_service.transition(
                asset.id, "available", acting_user_id=admin.id
            )
        asset_id = asset.id

        assert lifecycle_service.delete_asset(asset_id) is True
        assert history_service.count_for_asset(db_session, asset_id) == 0
        assert db_session.get(Asset, asset_id) is None
        # Other assets keep their history.
        assert history_service.count_for_asset(db_session, keep.id) == 1

    def test_delete_failure_keeps_history(self, db_session, make_user, make_asset, monkeypatch):
        admin = make_user(role="admin")
        asset = make_asset()
        lifecycle_service.transition(asset.id, "available", acting_user_id=admin.id)

        monkeypatch.setattr(asset_store, "delete", _disk_error)
        with pytest.raises(StorageFailure):
            lifecycle_service.delete_asset(asset.id)
        monkeypatch.undo()

        assert _reload(db_session, asset.id) is not None
        assert history_service.count_for_asset(db_session, asset.id) == 1
