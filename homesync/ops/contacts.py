# homesync/ops/contacts.py

from __future__ import annotations

import logging

from homesync.blocks import BlockView
from homesync.config import Settings
from homesync.reconcile import (
    CONTACT_LOG_COLUMNS,
    RESULT_CACHED,
    RESULT_MISSING,
    RESULT_OK,
    ReconciliationLog,
    fail_tag,
    skip_tag,
    stamp,
)
from homesync.scan import BatchResult, empty_result, has_data, iter_blocks
from homesync.services.contacts import Capability, Unavailable
from homesync.skip import CLOSED, SkipPolicy, closed, invalid_name
from homesync.text import find_phone, join_address

log = logging.getLogger(__name__)

# only these results mean "the contact is known to exist"
LOGGED_RESULTS = frozenset({RESULT_OK, RESULT_CACHED})


def contact_policy(settings: Settings) -> SkipPolicy:
    if settings.layout.contacts.ignore_name_validation:
        return SkipPolicy(closed)
    return SkipPolicy(invalid_name, closed)


def contact_notes(address: str, map_url: str) -> str:
    parts = []
    if address:
        parts.append(f"주소: {address}")
    if map_url:
        parts.append(f"지도: {map_url}")
    return "\n".join(parts)


def _log_row(phone: str, view: BlockView, address: str, map_url: str, result: str, existed: str = "") -> list:
    return [phone, view.name, view.label, address, map_url, result, existed, view.row, stamp()]


def _aborted(capability: Unavailable) -> BatchResult:
    log.error("contact directory unavailable: %s", capability.reason)
    return BatchResult(summary=f"⚠️ 연락처 동기화 중단\n{capability.reason}", aborted=True)


def is_logged(contact_log: ReconciliationLog, phone: str) -> bool:
    if phone not in contact_log:
        return False
    return str(contact_log.value(phone, "RESULT") or "").strip() in LOGGED_RESULTS


def sync_contacts(workbook, settings: Settings, capability: Capability) -> BatchResult:
    """Makes sure every open project's phone number is in the address book.

    Outcomes go to the contact log keyed by normalized phone; a phone already
    logged as ok is not looked up again unless verify_logged is set.
    """
    if isinstance(capability, Unavailable):
        return _aborted(capability)
    directory = capability.directory

    layout = settings.layout
    opts = layout.contacts
    table = workbook.table(layout.sheets.main)
    if not has_data(table, layout):
        return empty_result()

    contact_log = ReconciliationLog.open(workbook, layout.sheets.contact_log, CONTACT_LOG_COLUMNS)
    policy = contact_policy(settings)

    created = existed = cached = skipped = failed = 0
    failed_list: list[str] = []

    try:
        for view in iter_blocks(table, layout):
            decision = policy.evaluate(view)
            phone = find_phone(view.value("phone"))

            if decision is not None:
                if decision.counted:
                    skipped += 1
                if decision is CLOSED and opts.log_skip_reasons and phone and not is_logged(contact_log, phone):
                    address = join_address(view.value("address"), view.value("address_extra"))
                    contact_log.upsert(phone, _log_row(phone, view, address, view.value("map"), skip_tag("closed")))
                continue

            if not phone:
                if opts.skip_if_no_phone:
                    skipped += 1
                log.debug("row %s has no phone", view.row)
                continue

            address = join_address(view.value("address"), view.value("address_extra"))
            map_url = view.value("map")

            try:
                if opts.skip_if_logged and is_logged(contact_log, phone):
                    if not opts.verify_logged or directory.find_by_phone(phone):
                        cached += 1
                        prior = contact_log.value(phone, "CONTACT_EXISTED") or ""
                        contact_log.upsert(phone, _log_row(phone, view, address, map_url, RESULT_CACHED, prior))
                        continue
                    log.info("logged contact %s is gone from the directory, re-creating", phone)

                if directory.find_by_phone(phone):
                    existed += 1
                    contact_log.upsert(phone, _log_row(phone, view, address, map_url, RESULT_OK, "Y"))
                    continue

                resource = directory.create_contact(view.name or phone, phone, contact_notes(address, map_url))
                if address:
                    warning = directory.add_address(resource, address)
                    if warning:
                        log.warning(warning)
                created += 1
                contact_log.upsert(phone, _log_row(phone, view, address, map_url, RESULT_OK, "N"))
            except Exception as e:
                failed += 1
                failed_list.append(f"{view.label} ({e})")
                log.warning("contact sync failed for %s: %s", view.label, e)
                contact_log.upsert(phone, _log_row(phone, view, address, map_url, fail_tag(e)))
    finally:
        contact_log.flush()

    summary = f"생성 {created} / 기존 {existed} / 로그스킵 {cached} / 건너뜀 {skipped} / 실패 {failed}"
    log.info("contacts: %s", summary)
    return BatchResult(
        summary=summary,
        failed_list=failed_list,
        counts={"created": created, "existed": existed, "cached": cached, "skip": skipped, "fail": failed},
    )


def audit_contact_log(workbook, settings: Settings, capability: Capability) -> BatchResult:
    """Flags log rows whose phone is no longer in the directory. Nothing is deleted."""
    if isinstance(capability, Unavailable):
        return _aborted(capability)
    directory = capability.directory

    contact_log = ReconciliationLog.open(workbook, settings.layout.sheets.contact_log, CONTACT_LOG_COLUMNS)
    result_col = CONTACT_LOG_COLUMNS.index("RESULT")
    sync_col = CONTACT_LOG_COLUMNS.index("SYNC_AT")

    found = missing = 0
    missing_list: list[str] = []
    for phone in contact_log.keys():
        if directory.find_by_phone(phone):
            found += 1
            continue
        missing += 1
        missing_list.append(phone)
        values = contact_log.get(phone).values
        values[result_col] = RESULT_MISSING
        values[sync_col] = stamp()
        contact_log.upsert(phone, values)
    contact_log.flush()

    summary = f"확인 {found} / 누락 {missing}"
    log.info("contact audit: %s", summary)
    return BatchResult(summary=summary, failed_list=missing_list, counts={"found": found, "missing": missing})
