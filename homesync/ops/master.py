# homesync/ops/master.py

from __future__ import annotations

import logging

from homesync.config import Settings
from homesync.ops.address import KEY_MISSING, resolve_addresses
from homesync.ops.contacts import sync_contacts
from homesync.ops.drive_check import check_drive_files
from homesync.ops.folders import provision_folders
from homesync.scan import BatchResult

log = logging.getLogger(__name__)

REPORT_TITLE = "🎉 작업 완료 리포트"


def master_sync(workbook, settings: Settings, storage, capability, geocoder=None) -> BatchResult:
    """Address, folders and contacts in one pass, then the active-only drive check."""
    if geocoder is None and not settings.has_geocoding_key:
        log.error("master sync aborted: geocoding key missing")
        return BatchResult(summary=KEY_MISSING, aborted=True)

    sections = [
        ("주소 변환", resolve_addresses(workbook, settings, geocoder)),
        ("폴더/파일", provision_folders(workbook, settings, storage)),
        ("연락처", sync_contacts(workbook, settings, capability)),
        ("드라이브 체크", check_drive_files(workbook, settings, storage)),
    ]

    report = "\n\n".join([REPORT_TITLE] + [result.report(title) for title, result in sections])
    return BatchResult(summary=report)
