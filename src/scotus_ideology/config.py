"""Configuration constants for the SCOTUS ideology pipeline."""

VOTES_FILE = "SCDB_justice.csv"
SCORES_FILE = "mq_scores.csv"
JOINED_FILE = "joined_votes.csv"

# Raw SCDB / ideology-score column -> internal column
VOTE_COLUMNS = {
    "caseId": "case_id",
    "term": "term",
    "chief": "chief",
    "justice": "justice_id",
    "justiceName": "justice_name",
    "issueArea": "issue_area",
    "decisionDirection": "court_direction",
    "direction": "justice_direction",
}

SCORE_COLUMNS = {
    "term": "term",
    "justice": "justice_id",
    "post_mn": "score_mean",
    "post_sd": "score_sd",
}

JOIN_KEYS = ["term", "justice_id"]

# SCDB direction codes
CONSERVATIVE = 1
LIBERAL = 2
UNSPECIFIABLE = 3  # treated like a missing direction
DIRECTION_LABELS = {CONSERVATIVE: "conservative", LIBERAL: "liberal"}
ABSENT = 0  # feature sentinel: no majority direction for the area

# SCDB issueArea codes
ISSUE_AREAS = {
    1: "criminal_procedure",
    2: "civil_rights",
    3: "first_amendment",
    4: "due_process",
    5: "privacy",
    6: "attorneys",
    7: "unions",
    8: "economic_activity",
    9: "judicial_power",
    10: "federalism",
    11: "interstate_relations",
    12: "federal_taxation",
    13: "miscellaneous",
    14: "private_action",
}

# Model features, in column order
FEATURE_AREAS = [
    "criminal_procedure",
    "civil_rights",
    "first_amendment",
    "due_process",
    "privacy",
    "attorneys",
    "unions",
    "economic_activity",
    "judicial_power",
    "federalism",
    "federal_taxation",
]

# Nested comparison model: drops the three lowest-volume retained areas
REDUCED_AREAS = [
    "criminal_procedure",
    "civil_rights",
    "first_amendment",
    "due_process",
    "privacy",
    "economic_activity",
    "judicial_power",
    "federalism",
]
