"""
Q5 badge scoring.

Members answer a short self-assessment and get a level 0..5. Level 5
("Q5-Authority") is never granted automatically: it is stored with review
status ``pending`` until staff verifies it.
"""

from dataclasses import dataclass

from django.utils import timezone

LABEL_BY_LEVEL = {
    0: "Q5-Observer",
    1: "Q5-Initiate",
    2: "Q5-Practitioner",
    3: "Q5-Expert",
    4: "Q5-Pioneer",
    5: "Q5-Authority",
}

# (minimum score, level), checked in ascending order
LEVEL_THRESHOLDS = [(15, 1), (35, 2), (55, 3), (75, 4), (95, 5)]

TOP_EDUCATION = {"PhD", "Postdoc / Other-not-applicable"}


@dataclass
class BadgeAnswers:
    involvement: int
    contribution: int
    impact: int
    education: str = ""
    role_context: str = ""


@dataclass
class BadgeResult:
    level: int
    label: str
    review_status: str
    rationale: str


def clamp(n, lo=0, hi=4):
    return max(lo, min(hi, n))


def compute_q5_badge(answers: BadgeAnswers) -> BadgeResult:
    involvement = clamp(answers.involvement)
    contribution = clamp(answers.contribution)
    impact = clamp(answers.impact)

    score = contribution * 18 + impact * 10
    if answers.education in TOP_EDUCATION:
        score += 6
    elif answers.education == "Master":
        score += 3

    level = 0
    for minimum, candidate in LEVEL_THRESHOLDS:
        if score >= minimum:
            level = candidate

    # Authority needs the top answer on every axis; otherwise involvement caps the level.
    if not (involvement >= 4 and impact >= 4 and contribution >= 4):
        level = min(level, involvement)

    if level == 0:
        rationale = "You’re joining the ecosystem—welcome in."
    elif level == 5:
        rationale = "Authority is reviewed for verification."
    else:
        rationale = "Based on your contribution + impact signals."

    return BadgeResult(
        level=level,
        label=LABEL_BY_LEVEL.get(level, LABEL_BY_LEVEL[0]),
        review_status="pending" if level == 5 else "auto",
        rationale=rationale,
    )


def parse_answers(data) -> BadgeAnswers:
    """Build answers from a POST QueryDict; non-numeric values count as 0."""

    def as_int(key):
        try:
            return int(data.get(key, 0))
        except (TypeError, ValueError):
            return 0

    return BadgeAnswers(
        involvement=as_int('involvement'),
        contribution=as_int('contribution'),
        impact=as_int('impact'),
        education=(data.get('education') or '').strip(),
        role_context=(data.get('role_context') or '').strip(),
    )


def apply_badge(user, result: BadgeResult):
    user.q5_badge_level = result.level
    user.q5_badge_label = result.label
    user.q5_badge_review_status = result.review_status
    user.q5_badge_claimed_at = timezone.now()
    user.save(update_fields=[
        'q5_badge_level', 'q5_badge_label', 'q5_badge_review_status', 'q5_badge_claimed_at',
    ])
    return user


def verify_pending(users):
    """Mark pending badge claims in ``users`` as verified. Returns the row count."""
    return users.filter(q5_badge_review_status="pending").update(q5_badge_review_status="verified")
