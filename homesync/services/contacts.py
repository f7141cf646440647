"""Address book access through the Google People API.

probe_contact_directory() runs once per batch and returns Available or
Unavailable; callers branch on that instead of catching deep in a loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from homesync.text import phone_digits

log = logging.getLogger(__name__)

PERSON_FIELDS = "names,phoneNumbers"


class ContactDirectoryError(RuntimeError):
    pass


@dataclass(frozen=True)
class Available:
    directory: "PeopleDirectory"


@dataclass(frozen=True)
class Unavailable:
    reason: str


Capability = Union[Available, Unavailable]


class PeopleDirectory:
    def __init__(self, service):
        self.service = service
        self._by_phone: Optional[dict[str, str]] = None

    def _load_index(self) -> dict[str, str]:
        index: dict[str, str] = {}
        page_token = None
        while True:
            response = (
                self.service.people()
                .connections()
                .list(
                    resourceName="people/me",
                    personFields=PERSON_FIELDS,
                    pageSize=1000,
                    pageToken=page_token,
                )
                .execute()
            )
            for person in response.get("connections", []):
                for number in person.get("phoneNumbers", []):
                    digits = phone_digits(number.get("canonicalForm") or number.get("value"))
                    if digits:
                        index.setdefault(_local_digits(digits), person.get("resourceName", ""))
            page_token = response.get("nextPageToken")
            if not page_token:
                break
        log.debug("contact index: %d numbers", len(index))
        return index

    def find_by_phone(self, phone: str) -> Optional[str]:
        """Resource name of a contact carrying this number, or None."""
        if self._by_phone is None:
            self._by_phone = self._load_index()
        return self._by_phone.get(_local_digits(phone_digits(phone)))

    def create_contact(self, name: str, phone: str, notes: str = "") -> str:
        body = {
            "names": [{"givenName": name or phone}],
            "phoneNumbers": [{"value": phone, "type": "mobile"}],
        }
        if notes:
            body["biographies"] = [{"value": notes, "contentType": "TEXT_PLAIN"}]
        person = self.service.people().createContact(body=body, personFields=PERSON_FIELDS).execute()
        resource = person.get("resourceName", "")
        if self._by_phone is not None:
            self._by_phone[_local_digits(phone_digits(phone))] = resource
        return resource

    def add_address(self, resource_name: str, address: str) -> Optional[str]:
        """Attaches a home address. Returns a warning message instead of raising."""
        try:
            person = self.service.people().get(resourceName=resource_name, personFields="addresses").execute()
            addresses = list(person.get("addresses", []))
            addresses.append({"formattedValue": address, "type": "home"})
            self.service.people().updateContact(
                resourceName=resource_name,
                updatePersonFields="addresses",
                body={"etag": person.get("etag"), "addresses": addresses},
            ).execute()
        except Exception as e:
            return f"address not saved for {resource_name}: {e}"
        return None


def _local_digits(digits: str) -> str:
    # +82 10-1234-5678 and 010-1234-5678 are the same number
    if digits.startswith("82") and len(digits) >= 11:
        return "0" + digits[2:]
    return digits


def probe_contact_directory(creds) -> Capability:
    try:
        service = build("people", "v1", credentials=creds, cache_discovery=False)
        service.people().connections().list(
            resourceName="people/me", personFields="names", pageSize=1
        ).execute()
    except HttpError as e:
        status = getattr(e, "status_code", None) or getattr(getattr(e, "resp", None), "status", "")
        return Unavailable(f"People API 사용 불가 (HTTP {status})")
    except Exception as e:
        return Unavailable(f"People API 사용 불가 ({e})")
    return Available(PeopleDirectory(service))
