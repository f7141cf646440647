from __future__ import annotations

import argparse
import logging

from rich.logging import RichHandler

from homesync.config import load_settings
from homesync.ops.address import resolve_addresses
from homesync.ops.calendar import build_weekly_calendar
from homesync.ops.contacts import audit_contact_log, sync_contacts
from homesync.ops.db_sync import sync_project_db
from homesync.ops.diagnostics import diagnose
from homesync.ops.drive_check import check_drive_files
from homesync.ops.folders import provision_folders
from homesync.ops.folding import toggle_folding
from homesync.ops.master import master_sync
from homesync.scan import BatchResult
from homesync.services.contacts import probe_contact_directory
from homesync.services.drive import DriveStorage
from homesync.sheets.client import load_credentials, open_workbook

log = logging.getLogger("homesync")

TITLES = {
    "address": "주소 변환",
    "folders": "폴더/파일",
    "contacts": "연락처",
    "contacts-audit": "연락처 점검",
    "db": "DB 동기화",
    "drive-check": "드라이브 체크",
    "calendar": "금주 일정표",
    "fold": "접기/펴기",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="homesync", description="Project-tracking sheet automation.")
    parser.add_argument("--verbose", action="store_true", help="Debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("master", help="Address + folders + contacts, then the active drive check.")
    sub.add_parser("address", help="Resolve addresses and map links.")
    folders = sub.add_parser("folders", help="Create project folders and link them.")
    folders.add_argument("--force", action="store_true", help="Relink rows that already hold a Drive link.")
    sub.add_parser("contacts", help="Sync phone numbers into the address book.")
    sub.add_parser("contacts-audit", help="Flag logged phones missing from the address book.")
    db = sub.add_parser("db", help="Upsert project records into the DB sheet.")
    db.add_argument("--all", action="store_true", help="Include closed and waiting projects.")
    drive = sub.add_parser("drive-check", help="Color folder links by whether the folder has files.")
    drive.add_argument("--all", action="store_true", help="All statuses, ignoring the cache.")
    sub.add_parser("calendar", help="Rebuild this week's schedule sheet.")
    sub.add_parser("fold", help="Toggle row folding by status.")
    sub.add_parser("diagnose", help="Summarize what the block scan sees.")
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level="DEBUG" if verbose else "INFO",
        format="%(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[RichHandler(markup=False, rich_tracebacks=True)],
    )
    # discovery cache and http chatter
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)


def dispatch(args, settings) -> BatchResult | str:
    creds = load_credentials(settings.credentials_path)
    workbook = open_workbook(settings, creds)
    cmd = args.command

    if cmd == "diagnose":
        return diagnose(workbook, settings)
    if cmd == "address":
        return resolve_addresses(workbook, settings)
    if cmd == "folders":
        return provision_folders(workbook, settings, DriveStorage.from_credentials(creds), force=args.force)
    if cmd == "contacts":
        return sync_contacts(workbook, settings, probe_contact_directory(creds))
    if cmd == "contacts-audit":
        return audit_contact_log(workbook, settings, probe_contact_directory(creds))
    if cmd == "db":
        return sync_project_db(workbook, settings, include_all=args.all)
    if cmd == "drive-check":
        storage = DriveStorage.from_credentials(creds)
        return check_drive_files(workbook, settings, storage, include_all=args.all, force_refresh=args.all)
    if cmd == "calendar":
        return build_weekly_calendar(workbook, settings)
    if cmd == "fold":
        return toggle_folding(workbook.table(settings.layout.sheets.main), settings)
    if cmd == "master":
        storage = DriveStorage.from_credentials(creds)
        return master_sync(workbook, settings, storage, probe_contact_directory(creds))
    raise ValueError(f"Unknown command: {cmd}")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = load_settings()
        result = dispatch(args, settings)

        if isinstance(result, str):
            print(result)
            return 0
        print(result.report(TITLES.get(args.command, "")))
        return 1 if result.aborted else 0

    except Exception as e:
        log.debug("command failed", exc_info=True)
        print(f"ERROR command={args.command} err={e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
