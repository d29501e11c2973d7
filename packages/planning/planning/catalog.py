"""
Question Catalog - Versioned battery of clarifying questions

Pure data: each category maps to an ordered tuple of templates. A template with
choices becomes a multiple_choice question, one without becomes free text.

Catalogs are immutable values handed to the service, so tests can swap in a
smaller battery without touching module state.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Sequence, Tuple

from .schemas import PlanningCategory, QuestionType


OTHER_LABEL = "Other"
MAX_CHOICES = 26  # choice ids are single letters A..Z

CATEGORY_TITLES: Mapping[PlanningCategory, str] = MappingProxyType({
    PlanningCategory.GOAL: "Goal",
    PlanningCategory.AUDIENCE: "Audience",
    PlanningCategory.SCOPE: "Scope",
    PlanningCategory.DESIGN: "Design",
    PlanningCategory.CONTENT: "Content",
    PlanningCategory.TECHNICAL: "Technical",
    PlanningCategory.TIMELINE: "Timeline",
    PlanningCategory.CONSTRAINTS: "Constraints",
})


@dataclass(frozen=True)
class QuestionTemplate:
    """A catalog-defined question shape."""
    question: str
    options: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        if self.options is not None:
            # Normalize lists to tuples; empty choice sets mean free text
            options = tuple(self.options) or None
            object.__setattr__(self, "options", options)
            if options and len(options) > MAX_CHOICES:
                raise ValueError(
                    f"template has {len(options)} choices, max is {MAX_CHOICES}: {self.question!r}"
                )

    @property
    def question_type(self) -> QuestionType:
        return QuestionType.MULTIPLE_CHOICE if self.options else QuestionType.TEXT

    @property
    def allows_other(self) -> bool:
        return bool(self.options) and OTHER_LABEL in self.options


@dataclass(frozen=True)
class QuestionCatalog:
    """
    Immutable Category -> templates mapping.

    Iteration always follows PlanningCategory declaration order, then template
    order within the category. Categories missing from the mapping yield no
    questions.
    """
    version: str
    templates: Mapping[PlanningCategory, Tuple[QuestionTemplate, ...]] = field(default_factory=dict)

    def __post_init__(self):
        frozen = {
            PlanningCategory(category): tuple(items)
            for category, items in self.templates.items()
        }
        object.__setattr__(self, "templates", MappingProxyType(frozen))

    def for_category(self, category: PlanningCategory) -> Tuple[QuestionTemplate, ...]:
        return self.templates.get(category, ())

    def iter_templates(self) -> Iterator[Tuple[PlanningCategory, QuestionTemplate]]:
        for category in PlanningCategory:
            for template in self.for_category(category):
                yield category, template

    def total(self) -> int:
        return sum(len(items) for items in self.templates.values())


def build_catalog(
    version: str,
    raw: Mapping[PlanningCategory, Sequence[Dict]],
) -> QuestionCatalog:
    """Build a catalog from plain dicts: {"question": str, "options": [...]}."""
    return QuestionCatalog(
        version=version,
        templates={
            category: tuple(
                QuestionTemplate(question=item["question"], options=item.get("options"))
                for item in items
            )
            for category, items in raw.items()
        },
    )


DEFAULT_CATALOG = build_catalog("v1", {
    PlanningCategory.GOAL: [
        {
            "question": "What is the primary outcome or goal of this task?",
            "options": ["Generate leads/sales", "Provide information", "Collect user data",
                        "Build brand awareness", OTHER_LABEL],
        },
        {
            "question": "How will you measure success?",
            "options": ["Conversion rate", "Page views/traffic", "Form submissions",
                        "User engagement", OTHER_LABEL],
        },
    ],
    PlanningCategory.AUDIENCE: [
        {
            "question": "Who is the primary target audience?",
            "options": ["B2B professionals", "B2C consumers", "Existing customers",
                        "New prospects", OTHER_LABEL],
        },
        {"question": "What problem does your audience face that this addresses?"},
    ],
    PlanningCategory.SCOPE: [
        {"question": "What is included in this task?"},
        {"question": "What is explicitly NOT included (out of scope)?"},
    ],
    PlanningCategory.DESIGN: [
        {"question": "Are there any reference sites or designs to follow?"},
        {
            "question": "What is the visual style/tone?",
            "options": ["Professional/Corporate", "Modern/Minimal", "Bold/Creative",
                        "Friendly/Casual", OTHER_LABEL],
        },
        {
            "question": "Do you have brand colors or assets to use?",
            "options": ["Yes, I will provide them", "No, use your best judgment",
                        "Use existing brand from website", OTHER_LABEL],
        },
    ],
    PlanningCategory.CONTENT: [
        {
            "question": "Do you have the content/copy ready?",
            "options": ["Yes, I will provide it", "No, please write it",
                        "I have rough notes to expand", OTHER_LABEL],
        },
        {"question": "Are there specific messages or points that must be included?"},
    ],
    PlanningCategory.TECHNICAL: [
        {
            "question": "What technology/platform should be used?",
            "options": ["Static HTML/CSS", "React/Next.js", "WordPress", "No preference", OTHER_LABEL],
        },
        {
            "question": "Are there any integrations needed?",
            "options": ["Form submission to email", "CRM integration", "Analytics tracking",
                        "None needed", OTHER_LABEL],
        },
    ],
    PlanningCategory.TIMELINE: [
        {
            "question": "When do you need this completed?",
            "options": ["ASAP (within 24 hours)", "This week", "Next week", "No rush", "Specific date"],
        },
    ],
    PlanningCategory.CONSTRAINTS: [
        {"question": "Are there any specific constraints or requirements?"},
        {
            "question": "Is there a budget or resource limit?",
            "options": ["No budget limit", "Keep it simple/minimal", "Medium complexity okay", OTHER_LABEL],
        },
    ],
})
