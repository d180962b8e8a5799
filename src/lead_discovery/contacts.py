"""Contact normalization and table building.

Provider records arrive in many shapes. Each canonical contact field has an
ordered list of candidate paths; the first non-empty string found wins.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import (
    CONTACT_COLUMNS,
    STATUS_COLUMNS,
    NormalizedContact,
    ProspectJob,
    TableSpec,
)

DEFAULT_LIST_STATUS = "queued"
BUILDING_DESCRIPTION = "Wiza is still building the list. Please retry shortly."
LINKEDIN_PROFILE_PREFIX = "https://linkedin.com/in/"

# Canonical camelCase and snake_case names come first in every list.
FIELD_PROBES: Dict[str, Sequence[str]] = {
    "full_name": ("fullName", "full_name", "name"),
    "title": ("title", "job_title", "jobTitle", "headline"),
    "company": ("company", "company_name", "companyName", "organization"),
    "email": (
        "email",
        "work_email",
        "email1",
        "email_primary",
        "contact.email",
        "contact.email1",
        "contact_details.email",
        "contactDetails.email",
        "emails",
        "contact_details.emails",
        "contactDetails.emails",
    ),
    "email_status": ("emailStatus", "email_status", "email_verification_status"),
    "phone": (
        "phone",
        "phone_number",
        "phone_number1",
        "phone_number2",
        "mobile_phone1",
        "other_phone1",
        "contact.phone",
        "contact_details.phone",
        "contact_details.phone_number1",
        "contactDetails.phone",
        "phones",
        "phone_numbers",
    ),
    "location": ("location", "city", "region", "company_location"),
    "linkedin": (
        "linkedin",
        "linkedin_url",
        "linkedinUrl",
        "url",
        "profile_url",
        "profileUrl",
    ),
    "company_domain": ("companyDomain", "company_domain", "domain"),
    "company_linkedin": (
        "companyLinkedIn",
        "company_linkedin",
        "companyLinkedin",
        "company.linkedin",
        "company.linkedin_url",
    ),
}


def _scalar_string(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, tuple, bool)):
        return ""
    return str(value).strip()


def pick_first_string(candidates: Iterable[Any]) -> str:
    """Return the first non-empty trimmed scalar among ``candidates``.

    Lists are scanned in order; dicts never count as a value.
    """
    for candidate in candidates:
        if isinstance(candidate, (list, tuple)):
            for inner in candidate:
                text = _scalar_string(inner)
                if text:
                    return text
            continue
        text = _scalar_string(candidate)
        if text:
            return text
    return ""


def _dig(record: Dict[str, Any], path: str) -> Any:
    current: Any = record
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def normalize_contact(raw: Any) -> NormalizedContact:
    """Map one provider record onto a NormalizedContact.

    Pure and total: a non-dict record yields a contact of blank fields.
    """
    if not isinstance(raw, dict):
        return NormalizedContact()

    values = {
        field: pick_first_string(_dig(raw, path) for path in paths)
        for field, paths in FIELD_PROBES.items()
    }
    if not values["full_name"]:
        values["full_name"] = " ".join(
            part for part in (
                _scalar_string(raw.get("first_name")),
                _scalar_string(raw.get("last_name")),
            ) if part
        )
    return NormalizedContact(**values)


def linkedin_profile_url(handle: Any) -> str:
    """Expand a bare LinkedIn handle; full URLs are kept as given."""
    text = _scalar_string(handle)
    if not text:
        return ""
    if text.startswith(("http://", "https://")):
        return text
    return LINKEDIN_PROFILE_PREFIX + text


def hunter_email_to_raw(
    email: Dict[str, Any],
    domain: str,
    organization: Optional[str] = None,
) -> Dict[str, Any]:
    """Convert a Hunter domain-search email entry into a canonical record."""
    verification = email.get("verification")
    return {
        "fullName": " ".join(
            part for part in (
                _scalar_string(email.get("first_name")),
                _scalar_string(email.get("last_name")),
            ) if part
        ),
        "title": email.get("position"),
        "company": organization,
        "email": email.get("value"),
        "emailStatus": verification.get("status") if isinstance(verification, dict) else None,
        "phone": email.get("phone_number"),
        "linkedin": linkedin_profile_url(email.get("linkedin")),
        "companyDomain": domain,
    }


def build_contact_table(
    title: str,
    description: str,
    contacts: Iterable[NormalizedContact],
) -> TableSpec:
    """Build the 10-column contact table."""
    return TableSpec(
        title=title,
        description=description,
        columns=list(CONTACT_COLUMNS),
        rows=[contact.to_row() for contact in contacts],
    )


def build_status_table(job: ProspectJob, title: str = "Wiza Contacts") -> TableSpec:
    """Build the single-row table shown while a list is still building."""
    return TableSpec(
        title=title,
        description=BUILDING_DESCRIPTION,
        columns=list(STATUS_COLUMNS),
        rows=[[job.provider_status or DEFAULT_LIST_STATUS, job.id]],
    )


def normalize_contacts(records: Iterable[Any]) -> List[NormalizedContact]:
    return [normalize_contact(record) for record in records]
