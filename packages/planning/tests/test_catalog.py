import pytest

from planning.catalog import (
    CATEGORY_TITLES,
    DEFAULT_CATALOG,
    OTHER_LABEL,
    QuestionCatalog,
    QuestionTemplate,
    build_catalog,
)
from planning.schemas import PlanningCategory, QuestionType


def test_category_order_is_fixed():
    assert [c.value for c in PlanningCategory] == [
        "goal", "audience", "scope", "design", "content", "technical", "timeline", "constraints",
    ]
    assert set(CATEGORY_TITLES) == set(PlanningCategory)


def test_default_catalog_shape():
    counts = {c: len(DEFAULT_CATALOG.for_category(c)) for c in PlanningCategory}
    assert counts == {
        PlanningCategory.GOAL: 2,
        PlanningCategory.AUDIENCE: 2,
        PlanningCategory.SCOPE: 2,
        PlanningCategory.DESIGN: 3,
        PlanningCategory.CONTENT: 2,
        PlanningCategory.TECHNICAL: 2,
        PlanningCategory.TIMELINE: 1,
        PlanningCategory.CONSTRAINTS: 2,
    }
    assert DEFAULT_CATALOG.total() == 16
    assert DEFAULT_CATALOG.version == "v1"


def test_template_kind_follows_options():
    text = QuestionTemplate(question="Why?")
    choice = QuestionTemplate(question="Which?", options=["A thing", OTHER_LABEL])
    empty = QuestionTemplate(question="Empty?", options=[])

    assert text.question_type == QuestionType.TEXT
    assert choice.question_type == QuestionType.MULTIPLE_CHOICE
    assert choice.options == ("A thing", OTHER_LABEL)
    assert choice.allows_other is True
    assert empty.options is None
    assert empty.question_type == QuestionType.TEXT


def test_timeline_question_has_no_other_option():
    (timeline,) = DEFAULT_CATALOG.for_category(PlanningCategory.TIMELINE)
    assert timeline.allows_other is False
    assert timeline.options[-1] == "Specific date"


def test_too_many_choices_rejected():
    with pytest.raises(ValueError):
        QuestionTemplate(question="Pick", options=[f"opt {i}" for i in range(27)])


def test_iteration_follows_category_order_not_mapping_order():
    catalog = build_catalog("test", {
        PlanningCategory.TIMELINE: [{"question": "When?"}],
        PlanningCategory.GOAL: [{"question": "Why?"}, {"question": "What?"}],
    })
    order = [(c, t.question) for c, t in catalog.iter_templates()]
    assert order == [
        (PlanningCategory.GOAL, "Why?"),
        (PlanningCategory.GOAL, "What?"),
        (PlanningCategory.TIMELINE, "When?"),
    ]
    assert catalog.for_category(PlanningCategory.SCOPE) == ()


def test_catalog_is_immutable():
    catalog = QuestionCatalog(version="x", templates={PlanningCategory.GOAL: [QuestionTemplate("Why?")]})
    with pytest.raises(TypeError):
        catalog.templates[PlanningCategory.SCOPE] = ()
    with pytest.raises(Exception):
        catalog.version = "y"
    assert isinstance(catalog.for_category(PlanningCategory.GOAL), tuple)
