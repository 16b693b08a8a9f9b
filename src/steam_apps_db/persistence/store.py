"""
Writers that persist validated Steam payloads.

All functions work inside the caller's session and never commit, so a
fetch orchestrator can run them in one transaction.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from steam_apps_db.ingestion.contracts import AppDetailsPayload, NewsItemPayload
from steam_apps_db.persistence.models import (
    SteamApp,
    SteamAppAchievementHighlighted,
    SteamAppCategory,
    SteamAppContentDescriptor,
    SteamAppDemo,
    SteamAppDetail,
    SteamAppDeveloper,
    SteamAppDlc,
    SteamAppGenre,
    SteamAppMovie,
    SteamAppNews,
    SteamAppPackage,
    SteamAppPackageGroup,
    SteamAppPackageGroupSub,
    SteamAppPriceInfo,
    SteamAppPublisher,
    SteamAppRating,
    SteamAppRequirement,
    SteamAppScreenshot,
    SteamAppWorkshopItem,
)
from steam_apps_db.persistence.reconcile import (
    CollectionPolicy,
    ReconcileResult,
    assign_changed,
    reconcile_collection,
    sync_references,
)

# Platforms missing from the payload keep their stored requirements
REQUIREMENTS = CollectionPolicy(
    SteamAppRequirement, "steam_app_id", ("platform",), keep_absent=True
)
SCREENSHOTS = CollectionPolicy(
    SteamAppScreenshot, "steam_app_id", ("screenshot_id",), soft_delete=True
)
MOVIES = CollectionPolicy(SteamAppMovie, "steam_app_id", ("movie_id",), soft_delete=True)
DLCS = CollectionPolicy(SteamAppDlc, "steam_app_id", ("dlc_appid",))
DEMOS = CollectionPolicy(SteamAppDemo, "steam_app_id", ("demo_appid",))
PACKAGES = CollectionPolicy(SteamAppPackage, "steam_app_id", ("package_id",))
PACKAGE_GROUPS = CollectionPolicy(SteamAppPackageGroup, "steam_app_id", ("name",))
PACKAGE_GROUP_SUBS = CollectionPolicy(SteamAppPackageGroupSub, "package_group_id", ("package_id",))
ACHIEVEMENTS_HIGHLIGHTED = CollectionPolicy(
    SteamAppAchievementHighlighted,
    "steam_app_id",
    ("name", "path"),
    optional_key_fields=("path",),
)
CONTENT_DESCRIPTORS = CollectionPolicy(SteamAppContentDescriptor, "steam_app_id", ("descriptor_id",))
RATINGS = CollectionPolicy(SteamAppRating, "steam_app_id", ("board",))


def _save_package_groups(
    session: Session,
    entry: SteamApp,
    groups: list[dict[str, Any]],
    results: dict[str, ReconcileResult],
) -> None:
    subs_by_name: dict[Any, list[dict[str, Any]]] = {}
    for group in groups:
        subs_by_name[group["name"]] = group.pop("subs", [])

    group_result = reconcile_collection(session, PACKAGE_GROUPS, entry.id, groups)
    results[PACKAGE_GROUPS.name] = group_result

    subs_result = ReconcileResult()
    for (name,), group in group_result.rows.items():
        sub_result = reconcile_collection(
            session, PACKAGE_GROUP_SUBS, group.id, subs_by_name.get(name, [])
        )
        subs_result.inserted += sub_result.inserted
        subs_result.updated += sub_result.updated
        subs_result.removed += sub_result.removed
        subs_result.unchanged += sub_result.unchanged
        subs_result.dropped += sub_result.dropped
    results[PACKAGE_GROUP_SUBS.name] = subs_result


def save_app_details(
    session: Session,
    entry: SteamApp,
    payload: AppDetailsPayload,
    images: Mapping[str, str | None] | None = None,
) -> dict[str, ReconcileResult]:
    """
    Persist a detail payload for one catalog entry.

    The detail row is upserted, every nested collection present in the
    payload is reconciled, lookup associations are replaced and the price
    snapshot is overwritten. Collections whose key was absent from the
    payload are left untouched.

    Args:
        session: Session inside the caller's transaction
        entry: Catalog entry attached to session
        payload: Validated appdetails data
        images: Probed library_image / library_hero_image urls

    Returns:
        dict: Reconciliation result per collection table
    """
    values = payload.detail_values()
    values.update(images or {})

    detail = entry.detail
    if detail is None:
        entry.detail = SteamAppDetail(**values)
    else:
        assign_changed(detail, values)

    results: dict[str, ReconcileResult] = {}
    collections: list[tuple[CollectionPolicy, list[dict[str, Any]] | None]] = [
        (REQUIREMENTS, payload.requirement_rows()),
        (SCREENSHOTS, payload.screenshot_rows()),
        (MOVIES, payload.movie_rows()),
        (DLCS, payload.dlc_rows()),
        (DEMOS, payload.demo_rows()),
        (PACKAGES, payload.package_rows()),
        (ACHIEVEMENTS_HIGHLIGHTED, payload.achievement_rows()),
        (CONTENT_DESCRIPTORS, payload.content_descriptor_rows()),
        (RATINGS, payload.rating_rows()),
    ]
    for policy, rows in collections:
        if rows is not None:
            results[policy.name] = reconcile_collection(session, policy, entry.id, rows)

    groups = payload.package_group_rows()
    if groups is not None:
        _save_package_groups(session, entry, groups, results)

    if payload.categories is not None:
        sync_references(
            session,
            entry,
            "categories",
            SteamAppCategory,
            "category_id",
            (
                {"category_id": c.id, "description": c.description}
                for c in payload.categories
            ),
        )
    if payload.genres is not None:
        sync_references(
            session,
            entry,
            "genres",
            SteamAppGenre,
            "genre_id",
            ({"genre_id": g.id, "description": g.description} for g in payload.genres),
        )
    if payload.developers is not None:
        sync_references(
            session,
            entry,
            "developers",
            SteamAppDeveloper,
            "name",
            ({"name": name} for name in payload.developers if name),
        )
    if payload.publishers is not None:
        sync_references(
            session,
            entry,
            "publishers",
            SteamAppPublisher,
            "name",
            ({"name": name} for name in payload.publishers if name),
        )

    price = payload.price_values()
    if price is not None:
        if entry.price_info is None:
            entry.price_info = SteamAppPriceInfo(**price)
        else:
            assign_changed(entry.price_info, price)

    session.flush()
    return results


def save_news(
    session: Session,
    entry: SteamApp,
    items: Iterable[NewsItemPayload],
) -> ReconcileResult:
    """
    Upsert news items by their global gid.

    Stored items missing from the fetch are kept.
    """
    by_gid = {item.gid: item for item in items}
    result = ReconcileResult()
    if not by_gid:
        return result

    existing = session.scalars(
        select(SteamAppNews).where(SteamAppNews.gid.in_(list(by_gid)))
    ).all()
    stored = {row.gid: row for row in existing}

    for gid, item in by_gid.items():
        values = {"steam_app_id": entry.id, **item.row()}
        row = stored.get(gid)
        if row is None:
            row = SteamAppNews(gid=gid, **values)
            session.add(row)
            result.inserted += 1
        elif assign_changed(row, values):
            result.updated += 1
        else:
            result.unchanged += 1
        result.rows[(gid,)] = row

    session.flush()
    return result


def save_workshop_items(
    session: Session,
    entry: SteamApp,
    items: Iterable[Mapping[str, Any]],
) -> ReconcileResult:
    """Upsert merged workshop items by their global publishedfileid."""
    by_id = {item["publishedfileid"]: dict(item) for item in items}
    result = ReconcileResult()
    if not by_id:
        return result

    existing = session.scalars(
        select(SteamAppWorkshopItem).where(SteamAppWorkshopItem.publishedfileid.in_(list(by_id)))
    ).all()
    stored = {row.publishedfileid: row for row in existing}

    for file_id, values in by_id.items():
        values["steam_app_id"] = entry.id
        row = stored.get(file_id)
        if row is None:
            row = SteamAppWorkshopItem(**values)
            session.add(row)
            result.inserted += 1
        elif assign_changed(row, values):
            result.updated += 1
        else:
            result.unchanged += 1
        result.rows[(file_id,)] = row

    session.flush()
    return result
