from __future__ import annotations

"""Shared keyword lists used by the feature calculator and URL heuristics.

Kept apart from ``config`` so the vocabularies can be reviewed (and extended)
without touching weights or thresholds.
"""

from typing import Dict, List

# Hosts containing one of these get the "known platform" authority score.
AUTHORITATIVE_DOMAINS: List[str] = [
    "eventbrite.com",
    "meetup.com",
    "linkedin.com",
    "facebook.com",
    "conference.com",
    "summit.com",
    "workshop.com",
]

OFFICIAL_TLDS = (".gov", ".edu")

# Country code -> indicator strings. Entries starting with "." are TLDs.
COUNTRY_INDICATORS: Dict[str, List[str]] = {
    "de": [".de", "germany", "deutschland", "german"],
    "fr": [".fr", "france", "français", "french"],
    "gb": [".uk", ".co.uk", "united kingdom", "uk", "britain"],
    "us": [".us", "united states", "usa", "america"],
    "nl": [".nl", "netherlands", "nederland", "dutch"],
    "es": [".es", "spain", "españa", "spanish"],
    "it": [".it", "italy", "italia", "italian"],
    "ch": [".ch", "switzerland", "schweiz", "swiss"],
    "at": [".at", "austria", "österreich"],
    "be": [".be", "belgium", "belgië", "belgian"],
}

# Structured-data / event-semantics markers looked for in page content.
SCHEMA_INDICATORS: List[str] = [
    "json-ld",
    "microdata",
    "rdfa",
    "event",
    "organization",
    "person",
    "startdate",
    "enddate",
    "location",
    "speaker",
    "agenda",
    "schedule",
]

EVENT_TERMS: List[str] = [
    "conference",
    "summit",
    "workshop",
    "seminar",
    "meeting",
    "event",
    "forum",
    "symposium",
    "exhibition",
    "expo",
    "webinar",
    "training",
    "course",
    "session",
    "panel",
]

# Listing sites and vendor pages: many events, rarely the primary source.
AGGREGATOR_DOMAINS: List[str] = [
    "vendelux.com",
    "linkedin.com",
    "internationalconferencealerts.com",
    "10times.com",
    "allevents.in",
    "eventbrite.com",
    "meetup.com",
    "conference-service.com",
    "conference2go.com",
    "eventora.com",
    "eventsworld.com",
    "globalriskcommunity.com",
    "cvent.com",
    "conferencealert.com",
    "conferenceseries.com",
    "waset.org",
    "learn.microsoft.com",
    "consumerfinancialserviceslawmonitor.com",
    "opentext.com",
    "casepoint.com",
    "relativity.com",
]

CONFERENCE_PATH_KEYWORDS: List[str] = [
    "programm",
    "programme",
    "program",
    "agenda",
    "schedule",
    "zeitplan",
    "referenten",
    "speakers",
    "sprecher",
    "faculty",
    "presenters",
    "keynote",
    "sessions",
    "workshops",
]
