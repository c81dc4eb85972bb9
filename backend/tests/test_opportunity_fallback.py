from __future__ import annotations

from functools import partial

import anyio
import pytest

from kings_canvas.opportunities.fallback import (
    THEMES,
    build_edge_drafts,
    build_independent_draft,
    build_template_drafts,
    infer_theme,
)
from kings_canvas.opportunities.normalizer import normalize_draft
from kings_canvas.opportunities.simulation import TemplateSimulation
from kings_canvas.opportunities.types import BUCKET_LABELS


@pytest.mark.parametrize(
    "step_title,intention_title,theme",
    [
        ("Shadow a teacher", None, "teaching"),
        ("Email my supervisor", "Finish dissertation", "research"),
        ("Volunteer at the NHS trust", None, "health"),
        ("Pitch my startup", None, "enterprise"),
        ("Join the student union", None, "community"),
        ("Update my CV", "Get a graduate job", "general"),
    ],
)
def test_theme_inference_uses_step_and_intention_keywords(step_title, intention_title, theme):
    assert infer_theme(step_title, intention_title) == theme


def test_independent_draft_is_valid_and_mentions_the_step():
    d = build_independent_draft("Pitch my startup", None, "after_i_graduate")

    assert d.source == "independent"
    assert d.form == "evergreen"
    assert d.status == "suggested"
    assert d.focus
    assert "“Pitch my startup”" in d.summary
    assert d.summary.endswith("Use it to stay in motion as you transition after graduation.")
    assert normalize_draft(d) == d


def test_unknown_bucket_uses_the_do_now_hint():
    d = build_independent_draft("Update my CV", bucket_id="someday")
    assert d.summary.endswith("act while the idea is fresh.")


@pytest.mark.parametrize("theme_step", ["Shadow a teacher", "Lab research", "NHS clinic", "Startup", "Charity", "Update my CV"])
@pytest.mark.parametrize("bucket", list(BUCKET_LABELS))
def test_every_theme_and_bucket_has_valid_edge_drafts(theme_step, bucket):
    drafts = build_edge_drafts(theme_step, None, bucket)

    assert len(drafts) == 3
    assert all(d.source == "edge_simulated" for d in drafts)
    assert all(normalize_draft(d) == d for d in drafts)
    assert all("{" not in d.summary for d in drafts)


def test_edge_drafts_weave_in_step_and_intention():
    with_intention = build_edge_drafts("Shadow a teacher", "Become a teacher", "do-now")
    without = build_edge_drafts("Shadow a teacher", None, "now")

    assert "“Shadow a teacher”" in with_intention[0].summary
    assert with_intention[2].summary.endswith("volunteering linked to Become a teacher.")
    assert without[2].summary.endswith("volunteering.")


def test_template_batch_has_exactly_one_independent_last():
    drafts = build_template_drafts("Pitch my startup", None, "before-graduation")

    assert [d.source for d in drafts] == ["edge_simulated"] * 3 + ["independent"]
    assert drafts[-1].title == "Run a small independent test of your idea"
    assert len(THEMES) == 6


def test_template_batch_requires_a_step_title():
    with pytest.raises(ValueError):
        build_template_drafts("   ")


def test_template_simulation_matches_the_library():
    sim = TemplateSimulation()
    drafts = anyio.run(partial(sim.generate_drafts, "Join the student union", None, "do-later"))
    assert drafts == build_template_drafts("Join the student union", None, "do-later")
