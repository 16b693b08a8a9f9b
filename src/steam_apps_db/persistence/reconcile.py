"""
Reconciling upsert engine.

Converges the stored rows of one nested collection to a freshly fetched
list. Every collection runs through the same routine, parameterized by
a CollectionPolicy naming the owner column, the natural key and whether
absent rows are tombstoned or deleted.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from steam_apps_db.logger import get_logger
from steam_apps_db.persistence.models import Base, utcnow

logger = get_logger(__name__, component="reconcile")

Key = tuple[Any, ...]


@dataclass(frozen=True)
class CollectionPolicy:
    """
    How one nested collection is keyed and removed.

    Attributes:
        model: Mapped class holding the collection rows
        owner_field: Column pointing at the owning row
        key_fields: Columns forming the natural key within one owner
        soft_delete: Tombstone absent rows via removed_at instead of deleting them
        optional_key_fields: Key columns that may be null without dropping the row
        keep_absent: Upsert only, leaving stored rows absent from the fetch alone
    """

    model: type[Base]
    owner_field: str
    key_fields: tuple[str, ...]
    soft_delete: bool = False
    optional_key_fields: tuple[str, ...] = ()
    keep_absent: bool = False

    @property
    def name(self) -> str:
        return self.model.__tablename__  # type: ignore[no-any-return]

    def key_of(self, values: Mapping[str, Any]) -> Key:
        return tuple(values.get(k) for k in self.key_fields)

    def key_of_row(self, row: Base) -> Key:
        return tuple(getattr(row, k) for k in self.key_fields)

    def has_key(self, values: Mapping[str, Any]) -> bool:
        """True when every required key field is present and not null."""
        return all(
            values.get(k) is not None
            for k in self.key_fields
            if k not in self.optional_key_fields
        )


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation."""

    inserted: int = 0
    updated: int = 0
    removed: int = 0
    unchanged: int = 0
    dropped: int = 0
    rows: dict[Key, Base] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.updated or self.removed)


def _dedupe(policy: CollectionPolicy, rows: Iterable[Mapping[str, Any]]) -> tuple[dict[Key, dict[str, Any]], int]:
    fetched: dict[Key, dict[str, Any]] = {}
    dropped = 0
    for row in rows:
        if not policy.has_key(row):
            dropped += 1
            continue
        key = policy.key_of(row)
        # last occurrence wins
        fetched.pop(key, None)
        fetched[key] = dict(row)
    return fetched, dropped


def _comparable(value: Any) -> Any:
    # SQLite hands datetimes back naive; stored values are always UTC
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return value


def assign_changed(row: Base, values: Mapping[str, Any]) -> bool:
    """Set only the attributes whose value differs. Returns True if any did."""
    changed = False
    for attr, value in values.items():
        if _comparable(getattr(row, attr)) != _comparable(value):
            setattr(row, attr, value)
            changed = True
    return changed


def reconcile_collection(
    session: Session,
    policy: CollectionPolicy,
    owner_id: int,
    rows: Iterable[Mapping[str, Any]],
    *,
    now: datetime | None = None,
) -> ReconcileResult:
    """
    Converge stored rows for one owner to the fetched rows.

    Rows missing a required key field are dropped and duplicate keys
    collapse to their last occurrence. Stored rows absent from the fetch
    are tombstoned (soft_delete), deleted, or kept (keep_absent). Fetched
    rows are inserted or updated in place, and a tombstoned row that
    reappears is restored. Unless keep_absent is set, an empty fetch
    removes every stored row.

    Args:
        session: Open session, flushed before returning
        policy: Collection parameters
        owner_id: Primary key of the owning row
        rows: Fetched column values keyed by column name
        now: Tombstone timestamp (defaults to the current UTC time)

    Returns:
        ReconcileResult: Counts plus the live rows by natural key
    """
    model = policy.model
    owner_column = getattr(model, policy.owner_field)
    fetched, dropped = _dedupe(policy, rows)
    result = ReconcileResult(dropped=dropped)

    stored = session.scalars(select(model).where(owner_column == owner_id)).all()
    stored_by_key = {policy.key_of_row(row): row for row in stored}

    for key, row in stored_by_key.items():
        if key in fetched or policy.keep_absent:
            continue
        if policy.soft_delete:
            if getattr(row, "removed_at") is None:
                row.removed_at = now or utcnow()  # type: ignore[attr-defined]
                result.removed += 1
        else:
            session.delete(row)
            result.removed += 1

    for key, values in fetched.items():
        row = stored_by_key.get(key)
        if row is None:
            row = model(**{policy.owner_field: owner_id, **values})
            session.add(row)
            result.inserted += 1
        else:
            changed = assign_changed(row, values)
            if policy.soft_delete and getattr(row, "removed_at") is not None:
                row.removed_at = None  # type: ignore[attr-defined]
                changed = True
            if changed:
                result.updated += 1
            else:
                result.unchanged += 1
        result.rows[key] = row

    session.flush()

    logger.debug(
        "Collection reconciled",
        collection=policy.name,
        owner_id=owner_id,
        inserted=result.inserted,
        updated=result.updated,
        removed=result.removed,
        unchanged=result.unchanged,
        dropped=result.dropped,
    )
    return result


def sync_references(
    session: Session,
    entry: Base,
    attribute: str,
    lookup_model: type[Base],
    key_field: str,
    items: Iterable[Mapping[str, Any]],
) -> list[Base]:
    """
    Replace a many-to-many association set.

    Each lookup row is resolved by its natural key or created on first
    sight, then the entry's association list is replaced in one step so
    associations missing from items are dropped.
    """
    wanted: dict[Any, dict[str, Any]] = {}
    for item in items:
        key = item.get(key_field)
        if key is None:
            continue
        wanted.setdefault(key, dict(item))

    by_key: dict[Any, Base] = {}
    if wanted:
        column = getattr(lookup_model, key_field)
        existing = session.scalars(select(lookup_model).where(column.in_(list(wanted)))).all()
        by_key = {getattr(row, key_field): row for row in existing}

    for key, values in wanted.items():
        if key not in by_key:
            row = lookup_model(**values)
            session.add(row)
            by_key[key] = row

    linked = [by_key[key] for key in wanted]
    setattr(entry, attribute, linked)
    session.flush()
    return linked
