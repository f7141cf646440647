# homesync/ops/address.py

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

from homesync.blocks import BlockView
from homesync.config import Settings
from homesync.scan import BatchResult, empty_result, has_data, iter_blocks
from homesync.services.geocode import GeocodeError, KakaoGeocoder
from homesync.skip import DEFAULT_POLICY, Skip
from homesync.text import split_address_extra

log = logging.getLogger(__name__)

KEY_MISSING = "⚠️ 설정 오류\nKAKAO_API_KEY를 확인해주세요!"

NO_ADDRESS = Skip("no_address", counted=False)
ALREADY_RESOLVED = Skip("already_resolved")


def no_address(view: BlockView) -> Optional[Skip]:
    return None if view.value("address") else NO_ADDRESS


def already_resolved(view: BlockView) -> Optional[Skip]:
    # "지번 (도로명)" plus a map link means a previous run finished this block
    if "(" in view.value("address") and view.value("map"):
        return ALREADY_RESOLVED
    return None


ADDRESS_POLICY = DEFAULT_POLICY.then(no_address, already_resolved)


def map_url(template: str, display: str) -> str:
    # same reserved set as encodeURIComponent
    return template.format(query=quote(display, safe="-_.!~*'()"))


def resolve_addresses(workbook, settings: Settings, geocoder=None) -> BatchResult:
    """Geocode each open block's address and write back display, extra and map link."""
    layout = settings.layout
    if geocoder is None:
        if not settings.has_geocoding_key:
            log.error("KAKAO_API_KEY is missing or still the placeholder")
            return BatchResult(summary=KEY_MISSING, aborted=True)
        geocoder = KakaoGeocoder(settings.kakao_api_key)

    table = workbook.table(layout.sheets.main)
    if not has_data(table, layout):
        return empty_result()

    success = skipped = failed = 0
    failed_list: list[str] = []

    for view in iter_blocks(table, layout):
        decision = ADDRESS_POLICY.evaluate(view)
        if decision is not None:
            if decision.counted:
                skipped += 1
            log.debug("row %s skipped: %s", view.row, decision.reason)
            continue

        base, extra = split_address_extra(view.value("address"))
        if not base:
            continue

        try:
            match = geocoder.lookup(base)
            if match is None:
                failed += 1
                failed_list.append(f"{view.label} (주소 불분명)")
                continue

            display = match.display
            view.set("address", display)
            if extra and not view.value("address_extra"):
                view.set("address_extra", extra)
            view.set("map", map_url(layout.map_url_template, display))
            success += 1
        except GeocodeError as e:
            failed += 1
            failed_list.append(f"{view.label} (API 응답코드 {e.status_code})")
        except Exception as e:
            failed += 1
            failed_list.append(f"{view.label} (시스템 오류: {e})")
            log.warning("address lookup failed for %s: %s", view.label, e)

    summary = f"신규 {success}건 / 이미완료 {skipped}건 / 실패 {failed}건"
    log.info("address: %s", summary)
    return BatchResult(
        summary=summary,
        failed_list=failed_list,
        counts={"success": success, "skip": skipped, "fail": failed},
    )
