"""
Maps Fresh LinkedIn Scraper profile payloads into the canonical Candidate.

The provider is loose about shapes: sections may be a list, a single
object or missing; companies may be a string or {name, url}; dates may be
strings or {year, month, day}. Malformed entries inside a section are
dropped, a profile without any identifier is rejected.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from core.sourcing.models import Candidate, Experience, Education, Certification
from core.utils import normalize_location

logger = logging.getLogger(__name__)

PROFILE_URL_TEMPLATE = "https://linkedin.com/in/{identifier}"
CURRENT_END_DATES = {"present", "current", "now"}


class MalformedProfileError(ValueError):
    """The provider payload cannot produce a Candidate."""
    pass


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _text(value: Any) -> Optional[str]:
    """Strings as-is; objects via their name/text/title; everything else None."""
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, dict):
        for key in ("name", "text", "title"):
            if isinstance(value.get(key), str) and value[key].strip():
                return value[key].strip()
    return None


def _date(value: Any) -> Optional[str]:
    """'2021-03' style string from a string or {year, month, day}."""
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, dict) and value.get("year"):
        result = str(value["year"])
        if value.get("month"):
            result += f"-{int(value['month']):02d}"
            if value.get("day"):
                result += f"-{int(value['day']):02d}"
        return result
    return None


def _int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return None


def _map_experience(raw: Dict[str, Any]) -> Experience:
    date_block = raw.get("date") if isinstance(raw.get("date"), dict) else {}
    start = _date(date_block.get("start")) or _date(raw.get("start_date"))
    end = _date(date_block.get("end")) or _date(raw.get("end_date"))
    is_current = end is None or end.lower() in CURRENT_END_DATES
    if end and end.lower() in CURRENT_END_DATES:
        end = None

    company = raw.get("company")
    company_url = company.get("url") if isinstance(company, dict) else None
    return Experience(
        title=_text(raw.get("title")),
        company=_text(company),
        company_url=company_url or raw.get("company_linkedin_url"),
        location=_text(raw.get("location")),
        start_date=start,
        end_date=end,
        duration=_text(raw.get("duration")),
        description=_text(raw.get("description")),
        is_current=is_current,
    )


def _map_education(raw: Dict[str, Any]) -> Education:
    return Education(
        school=_text(raw.get("school_name")) or _text(raw.get("school")),
        degree=_text(raw.get("degree")),
        field_of_study=_text(raw.get("field_of_study")),
        start_date=_date(raw.get("start_date")),
        end_date=_date(raw.get("end_date")),
        description=_text(raw.get("description")),
    )


def _map_certification(raw: Dict[str, Any]) -> Certification:
    return Certification(
        name=_text(raw.get("name")),
        authority=_text(raw.get("authority")),
        certificate_id=_text(raw.get("license_number")),
        url=_text(raw.get("url")),
    )


def _map_section(items: Any, mapper, section: str, identifier: str) -> list:
    mapped = []
    for item in _as_list(items):
        if not isinstance(item, dict):
            continue
        try:
            mapped.append(mapper(item))
        except (ValidationError, ValueError, TypeError) as e:
            logger.warning(f"Skipping malformed {section} entry for {identifier}: {e}")
    return mapped


def _names(items: Any, *keys: str) -> List[str]:
    names = []
    for item in _as_list(items):
        if isinstance(item, str):
            value = item.strip()
        elif isinstance(item, dict):
            value = next((_text(item.get(k)) for k in keys if _text(item.get(k))), None)
        else:
            value = None
        if value:
            names.append(value)
    return names


def _photo_url(profile: Dict[str, Any]) -> Optional[str]:
    avatar = profile.get("avatar")
    if isinstance(avatar, list) and avatar and isinstance(avatar[0], dict) and avatar[0].get("url"):
        return avatar[0]["url"]
    return _text(profile.get("profile_picture"))


def map_profile(profile: Dict[str, Any], fallback_identifier: Optional[str] = None) -> Candidate:
    """
    Build a Candidate from a provider profile payload.

    Raises:
        MalformedProfileError: no public identifier or an unusable payload
    """
    if not isinstance(profile, dict):
        raise MalformedProfileError("Profile payload is not an object")

    identifier = _text(profile.get("public_identifier")) or (fallback_identifier or "").strip()
    if not identifier:
        raise MalformedProfileError("Profile has no public identifier")

    first_name = _text(profile.get("first_name"))
    last_name = _text(profile.get("last_name"))
    full_name = _text(profile.get("full_name")) or " ".join(p for p in (first_name, last_name) if p) or None

    counts = profile.get("follower_and_connection") if isinstance(profile.get("follower_and_connection"), dict) else {}

    try:
        return Candidate(
            public_identifier=identifier,
            profile_url=PROFILE_URL_TEMPLATE.format(identifier=identifier),
            full_name=full_name,
            first_name=first_name,
            last_name=last_name,
            headline=_text(profile.get("headline")),
            summary=_text(profile.get("summary")) or _text(profile.get("bio")),
            photo_url=_photo_url(profile),
            location=normalize_location(profile.get("location")),
            follower_count=_int(counts.get("follower_count")) or _int(profile.get("followers")),
            connection_count=_int(counts.get("connection_count")) or _int(profile.get("connections")),
            experiences=_map_section(profile.get("experiences"), _map_experience, "experience", identifier),
            skills=_names(profile.get("skills"), "skill", "name"),
            educations=_map_section(profile.get("educations"), _map_education, "education", identifier),
            certifications=_map_section(profile.get("certifications"), _map_certification, "certification", identifier),
            languages=_names(profile.get("languages"), "name"),
            honors=_names(profile.get("honors"), "title", "name"),
            source_data=profile,
        )
    except ValidationError as e:
        raise MalformedProfileError(str(e)) from e
