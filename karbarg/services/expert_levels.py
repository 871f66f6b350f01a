"""Expert level tiers and badge eligibility."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ExpertLevelCode(str, Enum):
    NEWCOMER = "newcomer"
    CONTRIBUTOR = "contributor"
    SPECIALIST = "specialist"
    SENIOR = "senior"
    EXPERT = "expert"
    TOP_EXPERT = "top_expert"


class BadgeCategory(str, Enum):
    PARTICIPATION = "participation"
    QUALITY = "quality"
    DOMAIN = "domain"


@dataclass(frozen=True)
class ExpertLevel:
    code: ExpertLevelCode
    title_fa: str
    title_en: str
    min_score: int
    description: str


@dataclass(frozen=True)
class Badge:
    code: str
    title_fa: str
    title_en: str
    category: BadgeCategory
    threshold: int


# Ordered by min_score; ranges are [min_score, next.min_score)
EXPERT_LEVELS: tuple[ExpertLevel, ...] = (
    ExpertLevel(ExpertLevelCode.NEWCOMER, "تازه‌وارد", "Newcomer", 0,
                "تازه به جامعه متخصصان پیوسته‌اید"),
    ExpertLevel(ExpertLevelCode.CONTRIBUTOR, "مشارکت‌کننده", "Contributor", 5,
                "شروع به مشارکت در پاسخ‌دهی کرده‌اید"),
    ExpertLevel(ExpertLevelCode.SPECIALIST, "متخصص", "Specialist", 20,
                "پاسخ‌های شما مورد توجه قرار گرفته‌اند"),
    ExpertLevel(ExpertLevelCode.SENIOR, "متخصص ارشد", "Senior Specialist", 60,
                "پاسخ‌های متخصصانه متعددی ارائه داده‌اید"),
    ExpertLevel(ExpertLevelCode.EXPERT, "خبره", "Expert", 150,
                "یکی از خبرگان فعال جامعه هستید"),
    ExpertLevel(ExpertLevelCode.TOP_EXPERT, "خبره برتر", "Top Expert", 300,
                "از برترین متخصصان فعال در پلتفرم"),
)

PARTICIPATION_BADGES = (
    Badge("ACTIVE_RESPONDER", "پاسخ‌دهنده فعال", "Active Responder", BadgeCategory.PARTICIPATION, 5),
    Badge("CONSISTENT_CONTRIBUTOR", "مشارکت مستمر", "Consistent Contributor", BadgeCategory.PARTICIPATION, 10),
    Badge("PROFESSIONAL_CONTRIBUTOR", "مشارکت حرفه‌ای", "Professional Contributor", BadgeCategory.PARTICIPATION, 25),
)

HELPFUL_BADGE = Badge("HELPFUL_ANSWERS", "پاسخ مفید", "Helpful Answers", BadgeCategory.QUALITY, 5)
EXPERT_BADGE = Badge("EXPERT_ANSWERS", "پاسخ متخصصانه", "Expert Answers", BadgeCategory.QUALITY, 3)
FEATURED_BADGE = Badge("FEATURED_ANSWER", "پاسخ منتخب", "Featured Answer", BadgeCategory.QUALITY, 1)

# Question category -> domain badge
DOMAIN_BADGES = {
    "tax": Badge("TAX_EXPERT", "متخصص مالیاتی", "Tax Expert", BadgeCategory.DOMAIN, 5),
    "accounting": Badge("ACCOUNTING_EXPERT", "متخصص حسابداری", "Accounting Expert", BadgeCategory.DOMAIN, 5),
    "insurance": Badge("INSURANCE_EXPERT", "متخصص بیمه", "Insurance Expert", BadgeCategory.DOMAIN, 5),
    "finance": Badge("FINANCE_EXPERT", "متخصص مالی", "Finance Expert", BadgeCategory.DOMAIN, 5),
    "investment": Badge("INVESTMENT_EXPERT", "متخصص سرمایه‌گذاری", "Investment Expert", BadgeCategory.DOMAIN, 5),
}


def get_expert_level(score: int) -> ExpertLevel:
    """Return the single tier whose range contains ``score``."""
    if score < 0:
        raise ValueError(f"score must be >= 0, got {score}")
    current = EXPERT_LEVELS[0]
    for level in EXPERT_LEVELS:
        if score >= level.min_score:
            current = level
    return current


def get_next_level(score: int) -> Optional[tuple[ExpertLevel, int]]:
    """Next tier and the points still needed, or None at the top tier."""
    current = get_expert_level(score)
    index = EXPERT_LEVELS.index(current)
    if index == len(EXPERT_LEVELS) - 1:
        return None
    following = EXPERT_LEVELS[index + 1]
    return following, following.min_score - score


def eligible_badges(
    total_answers: int,
    helpful_reactions: int,
    expert_reactions: int,
    accepted_answers: int,
    expert_answers_by_category: Optional[dict[str, int]] = None,
) -> list[Badge]:
    badges = [b for b in PARTICIPATION_BADGES if total_answers >= b.threshold]
    if helpful_reactions >= HELPFUL_BADGE.threshold:
        badges.append(HELPFUL_BADGE)
    if expert_reactions >= EXPERT_BADGE.threshold:
        badges.append(EXPERT_BADGE)
    if accepted_answers >= FEATURED_BADGE.threshold:
        badges.append(FEATURED_BADGE)
    for category, count in sorted((expert_answers_by_category or {}).items()):
        badge = DOMAIN_BADGES.get(category)
        if badge is not None and count >= badge.threshold:
            badges.append(badge)
    return badges
