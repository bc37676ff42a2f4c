"""
Lifecycle service — every write that changes an asset.

Four operations, each running inside a single ``unit_of_work()``:

  - ``create_asset``  registers a new asset.  No history entry: history
                      starts at the first transition, not at creation.
  - ``update_asset``  applies a partial ``AssetPatch``.  No history
                      entry, even if the patch touches status or owner.
  - ``transition``    changes status and owner and appends exactly one
                      history entry in the same transaction.
  - ``delete_asset``  removes an asset together with its history.

Status/owner policy: nothing ties the two together.  ``allocated`` with
no owner, or ``available`` with one, are accepted; callers choose
sensible combinations.

Audit gap: ``update_asset`` can change status or owner without leaving
a history entry, so after such an edit the latest entry no longer
mirrors the asset.  Set ``STRICT_AUDIT_TRAIL`` to make ``update_asset``
refuse those fields and force them through ``transition``.
"""

import enum
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from flask import current_app

from asset_tracker.errors import NotFoundError, ValidationError
from asset_tracker.models.asset import (
    ASSET_CATEGORIES,
    ASSET_STATUSES,
    STATUS_UNALLOCATED,
    Asset,
)
from asset_tracker.models.history import AssetHistory
from asset_tracker.services import asset_store, history_service, user_service
from asset_tracker.services.query_service import AssetWithOwner, compose_asset
from asset_tracker.services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

# Two-place precision for all money.
CENTS = Decimal("0.01")

# Largest value a Numeric(10, 2) column holds.
MAX_PRICE = Decimal("99999999.99")

# Patch fields that change status or ownership.
_STATE_FIELDS = frozenset({"status", "allocated_to_user_id"})

# Fields that may not be cleared to None.
_REQUIRED_FIELDS = frozenset({"name", "category", "serial_number", "status"})


# =========================================================================
# Partial updates
# =========================================================================


class _Unset(enum.Enum):
    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset.UNSET


@dataclass
class AssetPatch:
    """
    A partial asset update.

    A field left at ``UNSET`` is not touched.  A field set to ``None``
    is cleared (only allowed for nullable columns).  Any other value
    replaces the current one.
    """

    name: Any = UNSET
    category: Any = UNSET
    serial_number: Any = UNSET
    model: Any = UNSET
    brand: Any = UNSET
    purchase_date: Any = UNSET
    purchase_price: Any = UNSET
    status: Any = UNSET
    allocated_to_user_id: Any = UNSET
    notes: Any = UNSET

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AssetPatch":
        """
        Build a patch from a request payload.

        Keys present in ``data`` (even with a null value) are set; keys
        absent stay ``UNSET``.

        Raises:
            ValidationError: If ``data`` contains an unknown key.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError(f"Unknown asset field(s): {', '.join(unknown)}")
        return cls(**dict(data))

    def changes(self) -> dict[str, Any]:
        """Return only the fields that were set, by name."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def touches_state(self) -> bool:
        """True if the patch sets status or owner."""
        return bool(_STATE_FIELDS & self.changes().keys())


# =========================================================================
# Input validation helpers
# =========================================================================


def _require_text(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required.")
    return value.strip()


def _optional_text(value: Any, label: str) -> str | None:
    """Strip a nullable text field; blank becomes None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be text.")
    return value.strip() or None


def _validate_status(status: Any) -> str:
    if status not in ASSET_STATUSES:
        raise ValidationError(
            f"Invalid status '{status}'. Valid statuses: {', '.join(ASSET_STATUSES)}"
        )
    return status


def _validate_category(category: Any) -> str:
    if category not in ASSET_CATEGORIES:
        raise ValidationError(
            f"Invalid category '{category}'. "
            f"Valid categories: {', '.join(ASSET_CATEGORIES)}"
        )
    return category


def _validate_user_id(value: Any, label: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{label} must be an integer user ID.")
    return value


def _coerce_price(value: Any) -> Decimal | None:
    """
    Convert a price to a two-place Decimal.

    Accepts Decimal, int, float, or numeric string.  Floats go through
    ``str`` first so ``19.99`` stays ``19.99``.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("Purchase price must be a number.")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError("Purchase price must be a finite number.")
        value = str(value)
    try:
        price = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError("Purchase price must be a valid number.") from exc
    if not price.is_finite():
        raise ValidationError("Purchase price must be a finite number.")
    if price < 0:
        raise ValidationError("Purchase price cannot be negative.")
    if price > MAX_PRICE:
        raise ValidationError(f"Purchase price cannot exceed {MAX_PRICE}.")
    price = price.quantize(CENTS, rounding=ROUND_HALF_UP)
    # 99999999.995 rounds up past the column limit.
    if price > MAX_PRICE:
        raise ValidationError(f"Purchase price cannot exceed {MAX_PRICE}.")
    return price


def _coerce_date(value: Any) -> date | None:
    """Accept a date, a datetime, or an ISO-8601 date/datetime string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError as exc:
            raise ValidationError(
                f"Invalid purchase date '{value}'. Use YYYY-MM-DD."
            ) from exc
    raise ValidationError("Purchase date must be a date.")


_VALIDATORS = {
    "name": lambda v: _require_text(v, "Name"),
    "category": _validate_category,
    "serial_number": lambda v: _require_text(v, "Serial number"),
    "model": lambda v: _optional_text(v, "Model"),
    "brand": lambda v: _optional_text(v, "Brand"),
    "purchase_date": _coerce_date,
    "purchase_price": _coerce_price,
    "status": _validate_status,
    "allocated_to_user_id": lambda v: _validate_user_id(v, "Owner"),
    "notes": lambda v: _optional_text(v, "Notes"),
}


def _clean_changes(changes: dict[str, Any]) -> dict[str, Any]:
    """Validate and normalize each set field of a patch."""
    cleaned = {}
    for name, value in changes.items():
        if value is None and name in _REQUIRED_FIELDS:
            raise ValidationError(f"{name} cannot be cleared.")
        cleaned[name] = _VALIDATORS[name](value)
    return cleaned


def _require_user(session, user_id: int) -> None:
    if not user_service.user_exists(session, user_id):
        raise NotFoundError("user", user_id)


# =========================================================================
# Asset registrar
# =========================================================================


def create_asset(
    name: str,
    category: str,
    serial_number: str,
    model: str | None = None,
    brand: str | None = None,
    purchase_date: date | str | None = None,
    purchase_price: Decimal | float | str | None = None,
    status: str | None = None,
    allocated_to_user_id: int | None = None,
    notes: str | None = None,
) -> AssetWithOwner:
    """
    Register a new asset.

    Args:
        name:                 Display name (required).
        category:             One of ``ASSET_CATEGORIES``.
        serial_number:        Unique serial number (required).
        model:                Optional model name.
        brand:                Optional manufacturer.
        purchase_date:        Optional date or ISO string.
        purchase_price:       Optional non-negative amount; stored with
                              two decimal places.
        status:               Initial status; defaults to ``unallocated``.
        allocated_to_user_id: Optional initial owner.
        notes:                Optional free text.

    Returns:
        The new asset joined with its owner.

    Raises:
        ValidationError: Malformed input.
        NotFoundError:   The initial owner does not exist.
        ConflictError:   The serial number is already registered.
    """
    values = _clean_changes(
        {
            "name": name,
            "category": category,
            "serial_number": serial_number,
            "model": model,
            "brand": brand,
            "purchase_date": purchase_date,
            "purchase_price": purchase_price,
            "status": status if status is not None else STATUS_UNALLOCATED,
            "allocated_to_user_id": allocated_to_user_id,
            "notes": notes,
        }
    )

    with unit_of_work() as session:
        owner_id = values["allocated_to_user_id"]
        if owner_id is not None:
            _require_user(session, owner_id)
        asset = asset_store.insert(session, Asset(**values))
        result = compose_asset(session, asset)

    logger.info(
        "Created asset %d (%s) status=%s",
        result.asset.id,
        result.asset.serial_number,
        result.asset.status,
    )
    return result


# =========================================================================
# Field editor
# =========================================================================


def update_asset(asset_id: int, patch: AssetPatch) -> AssetWithOwner:
    """
    Apply a partial update to an asset without recording history.

    Only fields set on ``patch`` change; ``updated_at`` is refreshed
    even for an empty patch.

    Returns:
        The updated asset joined with its owner.

    Raises:
        ValidationError: Malformed input, a required field cleared, or
                         status/owner in the patch while
                         ``STRICT_AUDIT_TRAIL`` is on.
        NotFoundError:   The asset or the new owner does not exist.
        ConflictError:   The new serial number is already registered.
    """
    if patch.touches_state() and current_app.config.get("STRICT_AUDIT_TRAIL"):
        raise ValidationError(
            "Status and owner can only be changed through a status "
            "transition while STRICT_AUDIT_TRAIL is enabled."
        )
    changes = _clean_changes(patch.changes())

    with unit_of_work() as session:
        if asset_store.get(session, asset_id) is None:
            raise NotFoundError("asset", asset_id)
        owner_id = changes.get("allocated_to_user_id")
        if owner_id is not None:
            _require_user(session, owner_id)
        asset = asset_store.update(session, asset_id, changes)
        result = compose_asset(session, asset)

    if _STATE_FIELDS & changes.keys():
        logger.warning(
            "Asset %d status/owner edited without a history entry "
            "(status=%s, owner=%s)",
            asset_id,
            result.asset.status,
            result.asset.allocated_to_user_id,
        )
    logger.info("Updated asset %d fields: %s", asset_id, ", ".join(sorted(changes)))
    return result


# =========================================================================
# Lifecycle engine
# =========================================================================


def transition(
    asset_id: int,
    new_status: str,
    *,
    acting_user_id: int,
    new_owner_id: int | None = None,
    notes: str | None = None,
) -> AssetWithOwner:
    """
    Change an asset's status and owner and record the change.

    Checks, in order (first failure wins): the asset exists, the
    acting user exists, the new owner (if any) exists.  Then, in one
    transaction, appends a history entry holding the previous and new
    state and writes the new state onto the asset.  Passing no
    ``new_owner_id`` clears the owner.

    Args:
        asset_id:       Asset to change.
        new_status:     One of ``ASSET_STATUSES``.
        acting_user_id: User recording the change.
        new_owner_id:   Owner after the change, or None.
        notes:          Optional free text stored on the history entry.

    Returns:
        The updated asset joined with its (possibly None) owner.

    Raises:
        ValidationError: Unknown status or malformed IDs.
        NotFoundError:   Asset, acting user, or new owner missing.
        StorageFailure:  The database failed; nothing was written.
    """
    _validate_status(new_status)
    if acting_user_id is None:
        raise ValidationError("Acting user is required.")
    _validate_user_id(acting_user_id, "Acting user")
    _validate_user_id(new_owner_id, "Owner")
    notes = _optional_text(notes, "Notes")

    with unit_of_work() as session:
        asset = asset_store.get(session, asset_id)
        if asset is None:
            raise NotFoundError("asset", asset_id)
        _require_user(session, acting_user_id)
        if new_owner_id is not None:
            _require_user(session, new_owner_id)

        previous_status = asset.status
        previous_owner_id = asset.allocated_to_user_id

        history_service.append(
            session,
            AssetHistory(
                asset_id=asset_id,
                previous_status=previous_status,
                new_status=new_status,
                previous_user_id=previous_owner_id,
                new_user_id=new_owner_id,
                changed_by_user_id=acting_user_id,
                notes=notes,
            ),
        )
        asset = asset_store.update(
            session,
            asset_id,
            {"status": new_status, "allocated_to_user_id": new_owner_id},
        )
        result = compose_asset(session, asset)

    logger.info(
        "Transitioned asset %d: %s -> %s, owner %s -> %s, by user %d",
        asset_id,
        previous_status,
        new_status,
        previous_owner_id,
        new_owner_id,
        acting_user_id,
    )
    return result


# =========================================================================
# Asset retirer
# =========================================================================


def delete_asset(asset_id: int) -> bool:
    """
    Permanently delete an asset and all of its history.

    Returns:
        True if the asset existed and was removed, False if there was
        no such asset (not an error).
    """
    with unit_of_work() as session:
        removed_entries = history_service.delete_by_asset(session, asset_id)
        deleted = asset_store.delete(session, asset_id)

    if deleted:
        logger.info(
            "Deleted asset %d and %d history entries", asset_id, removed_entries
        )
    else:
        logger.info("Delete requested for missing asset %d", asset_id)
    return deleted
