"""Static domain allow-lists.

Loaded once at import and never mutated, so concurrent requests read them
without locking.
"""

# Joint-powers authorities and aggregators: URLs rarely move, domains never lapse
HIGH_STABILITY_DOMAINS = (
    "recyclesmart.org",
    "stopwaste.org",
    "earth911.com",
    "data.cincinnati-oh.gov",
)

# Major national haulers: occasional site restructures
MEDIUM_STABILITY_DOMAINS = (
    "wm.com",
    "republicservices.com",
    "wasteconnections.com",
)

# Authority domains tagged "jpa" for reporting, ahead of the generic .gov rule
JPA_DOMAINS = (
    "recyclesmart.org",
    "stopwaste.org",
)

# Hostname fragments that mark a waste hauler when no allow-list matches
HAULER_MARKERS = frozenset(["republic", "waste"])

GOV_SUFFIX = ".gov"
