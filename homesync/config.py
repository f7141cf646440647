# homesync/config.py

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

REQUIRED_FIELDS = (
    "number",
    "name",
    "status",
    "address",
    "address_extra",
    "map",
    "file",
    "phone",
    "date",
    "stage_label",
    "plan_date",
    "done_date",
    "folder_label",
    "folder_url",
)

KAKAO_KEY_PLACEHOLDER = "여기에"


class ConfigError(ValueError):
    pass


def _repo_root() -> Path:
    # .../homesync/config.py -> repo root
    return Path(__file__).resolve().parents[1]


@dataclass(frozen=True)
class FieldOffset:
    row: int
    col: int


@dataclass(frozen=True)
class TaskColumn:
    label_col: int
    date_col: int
    prefix: str = ""


@dataclass(frozen=True)
class SheetNames:
    main: str = "통합관리시트"
    calendar: str = "홈스타일_주간일정"
    contact_log: str = "연락처_log"
    drive_cache: str = "드라이브_check_log"
    drive_run_log: str = "드라이브_run_log"
    db: str = ""


@dataclass(frozen=True)
class NameRules:
    prefixes: tuple[str, ...] = ()
    suffix: str = "님"
    require_suffix: bool = False
    allow_any: bool = False
    # substrings that mark the project-name cell when scanning a whole header row
    row_hints: tuple[str, ...] = ("멱살", "스타일")


@dataclass(frozen=True)
class ContactOptions:
    skip_if_no_phone: bool = True
    skip_if_logged: bool = True
    verify_logged: bool = True
    log_skip_reasons: bool = True
    ignore_name_validation: bool = False


@dataclass(frozen=True)
class DriveOptions:
    cache_hours: float = 6
    has_files_color: str = "#ffff00"
    depth: int = 2
    excluded_keywords: tuple[str, ...] = ("물품리스트", "item list")


@dataclass(frozen=True)
class TemplateOptions:
    file_id: str = ""
    name_suffix: str = "물품리스트"
    stamp_cell: str = "G1"
    # cell whose value is stamped into each copy; blank sheet -> the project label
    source_sheet: str = ""
    source_cell: str = ""


DEFAULT_FIELDS: Mapping[str, FieldOffset] = MappingProxyType(
    {
        "number": FieldOffset(0, 2),
        "name": FieldOffset(0, 3),
        "status": FieldOffset(0, 7),
        "address": FieldOffset(0, 6),
        "address_extra": FieldOffset(2, 6),
        "map": FieldOffset(4, 6),
        "file": FieldOffset(4, 11),
        "phone": FieldOffset(2, 4),
        "date": FieldOffset(5, 4),
        "stage_label": FieldOffset(0, 7),
        "plan_date": FieldOffset(0, 8),
        "done_date": FieldOffset(0, 9),
        "folder_label": FieldOffset(1, 18),
        "folder_url": FieldOffset(1, 19),
    }
)

DEFAULT_TASK_COLUMNS = (
    TaskColumn(7, 8, ""),
    TaskColumn(13, 14, "[시공] "),
)


@dataclass(frozen=True)
class Layout:
    sheets: SheetNames = field(default_factory=SheetNames)
    start_row: int = 4
    block_height: Optional[int] = 9
    default_block_height: int = 9
    empty_block_threshold: int = 3
    fields: Mapping[str, FieldOffset] = field(default_factory=lambda: DEFAULT_FIELDS)
    folder_rows: int = 4
    task_columns: tuple[TaskColumn, ...] = DEFAULT_TASK_COLUMNS
    names: NameRules = field(default_factory=NameRules)
    map_url_template: str = "https://map.kakao.com/?q={query}"
    contacts: ContactOptions = field(default_factory=ContactOptions)
    drive: DriveOptions = field(default_factory=DriveOptions)
    template: TemplateOptions = field(default_factory=TemplateOptions)

    def __post_init__(self) -> None:
        validate_layout(self)

    def offset(self, name: str) -> FieldOffset:
        try:
            return self.fields[name]
        except KeyError:
            raise ConfigError(f"Unknown field: {name}") from None


@dataclass(frozen=True)
class Settings:
    spreadsheet_id: str
    credentials_path: str = ""
    kakao_api_key: str = ""
    layout: Layout = field(default_factory=Layout)

    @property
    def has_geocoding_key(self) -> bool:
        key = (self.kakao_api_key or "").strip()
        return bool(key) and KAKAO_KEY_PLACEHOLDER not in key


def validate_layout(layout: Layout) -> None:
    """Raises ConfigError on a layout that cannot address a block."""
    if layout.start_row < 1:
        raise ConfigError(f"start_row must be >= 1 (got {layout.start_row})")
    if layout.block_height is not None and layout.block_height < 1:
        raise ConfigError(f"block height must be positive or null (got {layout.block_height})")
    if layout.default_block_height < 1:
        raise ConfigError("default_height must be positive")
    if layout.empty_block_threshold < 1:
        raise ConfigError("empty_block_threshold must be >= 1")
    if layout.folder_rows < 1:
        raise ConfigError("folder_rows must be >= 1")

    missing = [f for f in REQUIRED_FIELDS if f not in layout.fields]
    if missing:
        raise ConfigError(f"Layout missing fields: {', '.join(missing)}")
    for name, off in layout.fields.items():
        if off.row < 0 or off.col < 1:
            raise ConfigError(f"Bad offset for field '{name}': row={off.row} col={off.col}")
    for tc in layout.task_columns:
        if tc.label_col < 1 or tc.date_col < 1:
            raise ConfigError(f"Bad task column: {tc}")
    if layout.drive.depth < 0:
        raise ConfigError("drive.depth must be >= 0")


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"layout section '{key}' must be a mapping")
    return value


def _parse_fields(raw: Mapping[str, Any]) -> Mapping[str, FieldOffset]:
    fields = dict(DEFAULT_FIELDS)
    for name, entry in raw.items():
        if not isinstance(entry, dict) or "row" not in entry or "col" not in entry:
            raise ConfigError(f"field '{name}' needs row and col")
        fields[str(name)] = FieldOffset(int(entry["row"]), int(entry["col"]))
    return MappingProxyType(fields)


def layout_from_dict(data: Mapping[str, Any], template_file_id: str = "") -> Layout:
    sheets = _section(data, "sheets")
    blocks = _section(data, "blocks")
    names = _section(data, "names")
    address = _section(data, "address")
    contacts = _section(data, "contacts")
    drive = _section(data, "drive")
    template = _section(data, "template")

    task_columns = DEFAULT_TASK_COLUMNS
    if data.get("task_columns"):
        task_columns = tuple(
            TaskColumn(int(t["label_col"]), int(t["date_col"]), str(t.get("prefix") or ""))
            for t in data["task_columns"]
        )

    height = blocks.get("height", 9)

    return Layout(
        sheets=SheetNames(**{k: str(v or "") for k, v in sheets.items()}),
        start_row=int(blocks.get("start_row", 4)),
        block_height=int(height) if height else None,
        default_block_height=int(blocks.get("default_height", 9)),
        empty_block_threshold=int(blocks.get("empty_block_threshold", 3)),
        fields=_parse_fields(_section(data, "fields")),
        folder_rows=int(data.get("folder_rows", 4)),
        task_columns=task_columns,
        names=NameRules(
            prefixes=tuple(str(p) for p in names.get("prefixes") or ()),
            suffix=str(names.get("suffix", "님") or ""),
            require_suffix=bool(names.get("require_suffix", False)),
            allow_any=bool(names.get("allow_any", False)),
            row_hints=tuple(str(h) for h in names.get("row_hints") or ("멱살", "스타일")),
        ),
        map_url_template=str(address.get("map_url_template") or "https://map.kakao.com/?q={query}"),
        contacts=ContactOptions(**{k: bool(v) for k, v in contacts.items()}),
        drive=DriveOptions(
            cache_hours=float(drive.get("cache_hours", 6)),
            has_files_color=str(drive.get("has_files_color") or "#ffff00"),
            depth=int(drive.get("depth", 2)),
            excluded_keywords=tuple(str(k) for k in drive.get("excluded_keywords") or ("물품리스트", "item list")),
        ),
        template=TemplateOptions(
            file_id=template_file_id or str(template.get("file_id") or ""),
            name_suffix=str(template.get("name_suffix") or "물품리스트"),
            stamp_cell=str(template.get("stamp_cell") or "G1"),
            source_sheet=str(template.get("source_sheet") or ""),
            source_cell=str(template.get("source_cell") or ""),
        ),
    )


def load_layout(path: Optional[Path] = None, template_file_id: str = "") -> Layout:
    import yaml

    path = path or (_repo_root() / "config" / "layout.yml")
    if not path.exists():
        raise FileNotFoundError(f"layout.yml not found at: {path}")

    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ConfigError("layout.yml must contain a mapping at top level")
    try:
        return layout_from_dict(data, template_file_id=template_file_id)
    except TypeError as e:
        # unknown keys inside a section
        raise ConfigError(f"Invalid layout.yml: {e}") from e


def load_settings() -> Settings:
    load_dotenv()

    spreadsheet_id = os.getenv("GOOGLE_SHEETS_SPREADSHEET_ID", "").strip()
    cred_path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS", "").strip()
    kakao_key = os.getenv("KAKAO_API_KEY", "").strip()
    layout_path = os.getenv("HOMESYNC_LAYOUT", "").strip()
    template_id = os.getenv("HOMESYNC_TEMPLATE_FILE_ID", "").strip()

    if not spreadsheet_id:
        raise RuntimeError("Missing env var: GOOGLE_SHEETS_SPREADSHEET_ID")
    if not cred_path:
        raise RuntimeError("Missing env var: GOOGLE_APPLICATION_CREDENTIALS")

    layout = load_layout(Path(layout_path) if layout_path else None, template_file_id=template_id)

    return Settings(
        spreadsheet_id=spreadsheet_id,
        credentials_path=cred_path,
        kakao_api_key=kakao_key,
        layout=layout,
    )
