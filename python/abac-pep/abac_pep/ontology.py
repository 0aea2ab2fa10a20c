"""Purpose ontology and identity attribute URIs."""

from __future__ import annotations

_P3P = "http://www.w3.org/2002/01/p3prdfv1#"

# P3P 1.0 purposes followed by the P3P 1.1 primary-purpose extension.
# Position in this tuple is the bit index used by purpose vectors.
PURPOSE_ONTOLOGY: tuple[str, ...] = tuple(
    _P3P + name
    for name in (
        "current",
        "admin",
        "develop",
        "tailoring",
        "pseudo-analysis",
        "pseudo-decision",
        "individual-analysis",
        "individual-decision",
        "contact",
        "historical",
        "telemarketing",
        "other-purpose",
        "account",
        "arts",
        "browsing",
        "charity",
        "communicate",
        "custom",
        "delivery",
        "downloads",
        "education",
        "feedback",
        "finmgt",
        "gambling",
        "gaming",
        "government",
        "health",
        "login",
        "marketing",
        "news",
        "payment",
        "sales",
        "search",
        "state",
        "surveys",
    )
)

ONTOLOGY_SIZE = len(PURPOSE_ONTOLOGY)

OWNER_ID_URI = "http://webinos.org/subject/id/PZ-Owner"
KNOWN_IDS_URI = "http://webinos.org/subject/id/known"
