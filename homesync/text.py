# homesync/text.py

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional

# 010-0000-0000 / 010 0000 0000 / (010)0000-0000 / 01000000000
_PHONE_RE = re.compile(r"\(?01[016789]\)?[\s\-.]?\d{3,4}[\s\-.]?\d{4}")

# base ends at the first lot number ("719" or "719-8")
_LOT_RE = re.compile(r"^(.+?\d+(?:-\d+)?)(.*)$", re.S)

_REGION_PREFIX_RE = re.compile(
    r"^(서울(특별시)?|경기(도)?|인천(광역시)?|대구(광역시)?|부산(광역시)?|광주(광역시)?|대전(광역시)?"
    r"|울산(광역시)?|제주(특별자치도)?|강원(도)?|충청[남북]도|전라[남북]도|경상[남북]도)\s+"
)
_DISTRICT_RE = re.compile(r"^[가-힣]+구\s+")

_ID_PATTERNS = (
    re.compile(r"/folders/([a-zA-Z0-9_-]+)"),
    re.compile(r"/d/([a-zA-Z0-9_-]+)"),
    re.compile(r"[?&]id=([a-zA-Z0-9_-]+)"),
)

_HYPERLINK_RE = re.compile(r'HYPERLINK\(\s*"([^"]+)"', re.I)

DRIVE_HOST = "drive.google.com"
DOCS_HOST = "docs.google.com"


def cell_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def normalize_phone(raw: Any) -> str:
    """Canonical 010-XXXX-XXXX / 010-XXX-XXXX, or the trimmed input unchanged."""
    if not raw:
        return ""
    digits = re.sub(r"\D", "", str(raw))

    if len(digits) == 11 and digits.startswith("010"):
        return f"{digits[:3]}-{digits[3:7]}-{digits[7:]}"
    if len(digits) == 10 and digits.startswith("010"):
        return f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"
    return str(raw).strip()


def find_phone(text: Any) -> str:
    m = _PHONE_RE.search(cell_text(text))
    return normalize_phone(m.group(0)) if m else ""


def phone_digits(phone: Any) -> str:
    return re.sub(r"\D", "", cell_text(phone))


def collapse_ws(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def split_address_extra(raw: Any) -> tuple[str, str]:
    """Split an address into (base, extra).

    base: everything up to and including the first lot number ("... 719-8").
    extra: the remainder (unit/floor), parenthesised parts removed.
    """
    s = collapse_ws(cell_text(raw).replace("\r\n", "\n").replace("\n", " "))
    if not s:
        return "", ""

    m = _LOT_RE.match(s)
    if not m:
        return s, ""

    base = m.group(1).strip()
    rest = re.sub(r"\([^)]*\)", " ", m.group(2))
    return base, collapse_ws(rest)


def clean_region_prefix(text: Any) -> str:
    return _REGION_PREFIX_RE.sub("", cell_text(text), count=1).strip()


def strip_district(text: str) -> str:
    return _DISTRICT_RE.sub("", text or "", count=1)


def join_address(address: Any, extra: Any) -> str:
    return collapse_ws(f"{cell_text(address)} {cell_text(extra)}")


def extract_id_from_url(url: Any) -> str:
    """Provider id from a folder/file URL; unknown URLs come back verbatim."""
    s = cell_text(url)
    if not s:
        return ""
    for pattern in _ID_PATTERNS:
        m = pattern.search(s)
        if m:
            return m.group(1)
    return s


def is_drive_url(url: Any) -> bool:
    return DRIVE_HOST in cell_text(url)


def is_google_file_url(url: Any) -> bool:
    """Drive folder links and Docs/Sheets file links alike."""
    s = cell_text(url)
    return DRIVE_HOST in s or DOCS_HOST in s


def url_from_cell(cell: Any) -> str:
    """Best link for a cell: hyperlink, then HYPERLINK() formula, then an http display value."""
    if cell is None:
        return ""
    link = cell_text(getattr(cell, "hyperlink", ""))
    if link:
        return link

    formula = cell_text(getattr(cell, "formula", ""))
    if formula.upper().startswith("=HYPERLINK("):
        m = _HYPERLINK_RE.search(formula)
        if m:
            return m.group(1)

    display = cell_text(getattr(cell, "display", ""))
    if display.startswith("http"):
        return display
    return ""


def link_or_display(cell: Any) -> str:
    display = cell_text(getattr(cell, "display", ""))
    return display or url_from_cell(cell)


def date_prefix(raw: Any, display: Any) -> str:
    """yyMMdd for a real date, else digits pulled out of the display text."""
    if isinstance(raw, (datetime, date)):
        return raw.strftime("%y%m%d")

    text = cell_text(display)
    digits = re.sub(r"\D", "", text)
    if len(digits) == 8:
        return digits[2:]
    if len(digits) == 6:
        return digits
    return text


def fmt_month_day(raw: Any, display: Any = None) -> str:
    if isinstance(raw, (datetime, date)):
        return raw.strftime("%m/%d")
    text = cell_text(display if display is not None else raw)
    return text


def parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    s = cell_text(value)
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1]
    try:
        return datetime.fromisoformat(s.replace("/", "-"))
    except ValueError:
        return None


def truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return cell_text(value).upper() in ("TRUE", "Y", "YES", "1")
