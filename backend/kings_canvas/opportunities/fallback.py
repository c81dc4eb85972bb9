from __future__ import annotations

from dataclasses import dataclass

from .types import OpportunityDraft, normalize_bucket

THEMES = ("teaching", "research", "health", "enterprise", "community", "general")

_THEME_KEYWORDS: dict[str, tuple[str, ...]] = {
    "teaching": ("school", "teach", "classroom", "teacher", "education", "pgce"),
    "research": ("research", "lab", "study", "dissertation", "project", "supervisor"),
    "health": ("health", "clinic", "hospital", "patient", "nhs", "care"),
    "enterprise": ("business", "enterprise", "startup", "start-up", "venture", "innovation"),
    "community": ("community", "volunteer", "society", "union", "civic", "charity"),
}

_TIME_HINTS: dict[str, str] = {
    "do-now": "Start this within the next fortnight so you can act while the idea is fresh.",
    "do-later": "Line this up for the next term so it is ready when your timetable opens up.",
    "before-graduation": "Treat it as a capstone commitment before you finish at King's.",
    "after-graduation": "Use it to stay in motion as you transition after graduation.",
}


@dataclass(frozen=True)
class _Template:
    title: str
    summary: str
    focus: tuple[str, ...]


_TEMPLATES: dict[str, _Template] = {
    "teaching": _Template(
        title="Arrange independent classroom volunteering",
        summary=(
            "Identify a local school, homework club or youth organisation and offer to support a "
            "regular session so you can practise skills linked to “{step}”."
        ),
        focus=("capability", "credibility"),
    ),
    "research": _Template(
        title="Design a small independent research mini project",
        summary=(
            "Agree a focused question with a tutor or peer, run a mini study on “{step}” "
            "and capture notes for future applications."
        ),
        focus=("capability",),
    ),
    "health": _Template(
        title="Arrange independent health or wellbeing volunteering",
        summary=(
            "Offer time to a local clinic, helpline or wellbeing charity so you can observe and "
            "contribute to services connected to “{step}”."
        ),
        focus=("capability", "credibility"),
    ),
    "enterprise": _Template(
        title="Run a small independent test of your idea",
        summary=(
            "Prototype a simple version of your idea, share it with potential users and log what "
            "it means for “{step}”."
        ),
        focus=("capability", "capital"),
    ),
    "community": _Template(
        title="Organise an independent community action",
        summary=(
            "Choose a local cause, gather a few peers and deliver a small activity tied to "
            "“{step}”, capturing what the community needs next."
        ),
        focus=("capital",),
    ),
    "general": _Template(
        title="Plan and complete a small independent action",
        summary=(
            "Select one achievable action related to “{step}”, schedule it and record "
            "what you learn in a short reflection."
        ),
        focus=("capability",),
    ),
}


def infer_theme(step_title: str, intention_title: str | None = None) -> str:
    haystack = f"{step_title or ''} {intention_title or ''}".lower()
    for theme, keywords in _THEME_KEYWORDS.items():
        if any(k in haystack for k in keywords):
            return theme
    return "general"


def build_independent_draft(
    step_title: str,
    intention_title: str | None = None,
    bucket_id: str | None = None,
) -> OpportunityDraft:
    """Deterministic independent opportunity for a batch the model left without one."""
    template = _TEMPLATES[infer_theme(step_title, intention_title)]
    hint = _TIME_HINTS[normalize_bucket(bucket_id) or "do-now"]
    return OpportunityDraft(
        title=template.title,
        summary=f"{template.summary.format(step=str(step_title or '').strip())} {hint}",
        source="independent",
        form="evergreen",
        focus=list(template.focus),
        status="suggested",
    )


@dataclass(frozen=True)
class _EdgeTemplate:
    title: str
    form: str
    focus: str
    # Placeholders: {step}, {for_intention}, {linked_intention}.
    summary: str


def _t(title: str, form: str, focus: str, summary: str) -> _EdgeTemplate:
    return _EdgeTemplate(title=title, form=form, focus=focus, summary=summary)


_EDGE_TEMPLATES: dict[str, dict[str, tuple[_EdgeTemplate, ...]]] = {
    "teaching": {
        "do-now": (
            _t("Join a King's Edge taster on routes into teaching", "intensive", "capability",
               "Take part in a simulated King's Edge taster session that links “{step}” to immediate ways of gaining classroom experience."),
            _t("Support a King's outreach visit to a local school", "sustained", "credibility",
               "Shadow a simulated King's Edge outreach visit in the next few weeks, helping deliver an activity and reflecting on what makes a great session for a trial."),
            _t("Book a one to one to map your teaching pathway", "short_form", "capability",
               "Use a simulated King's Edge coaching appointment to connect “{step}” with modules, part time work and volunteering{linked_intention}."),
        ),
        "do-later": (
            _t("Reserve a King's Edge classroom assistant workshop", "intensive", "capability",
               "Plan ahead for a term-time workshop on behaviour management so you can practise techniques that feed into “{step}”."),
            _t("Pair with a King's Edge supported tutoring project", "sustained", "credibility",
               "Line up a tutoring commitment for next term where you stretch your responsibility with support from King's Edge."),
            _t("Schedule King's Edge coaching to line up school commitments", "short_form", "capability",
               "Work through a coaching session that sets milestones for securing placements, references and lesson ideas over the next term."),
        ),
        "before-graduation": (
            _t("Complete a King's Edge micro-credential in education practice", "short_form", "capability",
               "Earn a micro-credential focused on education practice so you can evidence “{step}” when you apply for teacher training."),
            _t("Lead a school based project through King's Edge", "sustained", "credibility",
               "Take ownership of a King's Edge partner school project where you design activity plans, brief volunteers and evaluate impact."),
            _t("Prepare a teaching focused portfolio with King's Edge", "sustained", "capability",
               "Work with a mentor to curate reflections, lesson resources and evidence that show how “{step}” has grown over time."),
        ),
        "after-graduation": (
            _t("Join a King's Edge transition session for teaching routes", "intensive", "capability",
               "Attend an alumni focused session exploring teacher training routes, funding and early career expectations."),
            _t("Apply for a King's Edge alumni teaching residency", "sustained", "credibility",
               "Work with King's Edge staff on a simulated residency project where graduates support a local school over a half term."),
            _t("Work with a King's Edge coach on early career teaching plans", "short_form", "capability",
               "Build a first-year teaching plan that keeps “{step}” progressing once you finish at King's."),
        ),
    },
    "research": {
        "do-now": (
            _t("Join a King's Edge briefing on research questions", "intensive", "capability",
               "Explore how to refine research questions and methods so “{step}” can move from an idea into action."),
            _t("Contribute to a King's Edge mini-study", "sustained", "credibility",
               "Sign up for a short simulated study where you collect data with a small peer team and practice documenting insights."),
            _t("Book King's Edge coaching on your research plan", "short_form", "capability",
               "Use a coaching slot to connect methods, supervisors and resources{for_intention}."),
        ),
        "do-later": (
            _t("Reserve a King's Edge data skills workshop", "intensive", "capability",
               "Schedule a next-term workshop to improve analysis tools you can apply when progressing “{step}”."),
            _t("Shadow a King's Edge supervisor-led project", "sustained", "credibility",
               "Pair with an academic-led mini project where you practice setting research rhythms over a whole term."),
            _t("Join a King's Edge mentoring clinic to scope your study", "sustained", "capability",
               "Map deliverables, ethics checkpoints and dissemination moments for the study you want to line up."),
        ),
        "before-graduation": (
            _t("Complete a King's Edge research methods micro-credential", "short_form", "capability",
               "Evidence advanced research methods that directly support “{step}” when you apply for postgraduate roles."),
            _t("Lead a King's Edge research dissemination project", "sustained", "credibility",
               "Design a showcase or publication plan that helps peers understand your findings and impact."),
            _t("Assemble a research showcase portfolio", "sustained", "capability",
               "Work alongside a mentor to curate abstracts, posters and commentary that prove your readiness for research careers."),
        ),
        "after-graduation": (
            _t("Attend a King's Edge early career researcher forum", "evergreen", "capital",
               "Connect with alumni researchers, hear what early roles look like and expand your professional network."),
            _t("Collaborate on a King's Edge alumni research challenge", "sustained", "credibility",
               "Tackle a themed challenge with other graduates to keep your research practice active."),
            _t("Work with King's Edge coaching on postgrad research plans", "short_form", "capability",
               "Create a 6 to 12 month plan for sustaining “{step}” as you move into early career roles."),
        ),
    },
    "health": {
        "do-now": (
            _t("Join a King's Edge workshop on patient communication", "intensive", "capability",
               "Practise scenario-based communication so you feel ready for “{step}” in real settings."),
            _t("Assist with a simulated clinic outreach shift", "sustained", "credibility",
               "Take on a short outreach shift that mirrors work with patients or service users and reflect with facilitators afterwards."),
            _t("Book reflective coaching on your health pathway", "short_form", "capability",
               "Use a coaching slot to understand how placements, study and volunteering combine{for_intention}."),
        ),
        "do-later": (
            _t("Reserve a King's Edge short course on health tech", "short_form", "capability",
               "Spend next term building confidence with tools and data that support “{step}”."),
            _t("Plan a King's Edge health promotion project", "sustained", "credibility",
               "Co-design a community health campaign where you trial interventions with guidance from King's Edge."),
            _t("Meet a King's Edge mentor from clinical placements", "sustained", "capability",
               "Learn how other students balance shifts, study and wellbeing before you commit to a longer placement."),
        ),
        "before-graduation": (
            _t("Complete a King's Edge patient care micro-credential", "short_form", "capability",
               "Gain credentialed evidence of patient-centred care that underpins “{step}”."),
            _t("Lead a health innovation project with King's Edge", "sustained", "credibility",
               "Run a multi-week project addressing a health challenge with peers from different disciplines."),
            _t("Curate a reflective health practice portfolio", "sustained", "capability",
               "Gather case notes, feedback and insights from your experiences to showcase to future supervisors."),
        ),
        "after-graduation": (
            _t("Attend a King's Edge transition workshop for new health professionals", "intensive", "capability",
               "Explore induction expectations, supervision models and wellbeing plans for your first year post-graduation."),
            _t("Join a King's Edge alumni community health project", "sustained", "capital",
               "Collaborate with graduates to deliver a community health initiative in partnership with local organisations."),
            _t("Work with a King's Edge coach on early career health plans", "short_form", "capability",
               "Draft a rotation and development plan that keeps “{step}” moving after King's."),
        ),
    },
    "enterprise": {
        "do-now": (
            _t("Join a King's Edge idea generation sprint", "intensive", "capability",
               "Rapidly test propositions for “{step}” alongside other founders-in-training."),
            _t("Prototype a King's Edge venture challenge", "sustained", "credibility",
               "Form a small squad to run a one-week experiment, capture feedback and decide the next iteration."),
            _t("Book King's Edge coaching on your offer", "short_form", "capability",
               "Spend an hour clarifying customer promises, measures of success and near-term targets."),
        ),
        "do-later": (
            _t("Reserve a King's Edge market validation workshop", "intensive", "capability",
               "Plan a masterclass that helps you collect evidence for “{step}” during the next term."),
            _t("Apply to a King's Edge incubator style project", "sustained", "credibility",
               "Line up a term-long incubator where you test governance, finances and brand positioning with mentors."),
            _t("Schedule mentoring to map investment-ready milestones", "sustained", "capability",
               "Work backwards from a future pitch to identify the experiments and partnerships you need this year."),
        ),
        "before-graduation": (
            _t("Complete a King's Edge venture building short course", "short_form", "capability",
               "Build a capstone-quality toolkit for growing “{step}” into a credible venture."),
            _t("Lead a student enterprise project via King's Edge", "sustained", "credibility",
               "Coordinate a multi-disciplinary project with real budgets, customers and feedback loops."),
            _t("Prepare a pitch portfolio with King's Edge mentoring", "sustained", "capability",
               "Curate decks, prototypes and stories that prove traction when you meet investors or partners."),
        ),
        "after-graduation": (
            _t("Attend a King's Edge alumni founder networking circle", "evergreen", "capital",
               "Meet other graduate founders, swap supplier contacts and hear what early revenue journeys look like."),
            _t("Join a King's Edge alumni accelerator sprint", "sustained", "credibility",
               "Commit to a short, intense sprint with clear accountability to keep your venture momentum after graduation."),
            _t("Work with King's Edge coaching on post-grad venture plans", "short_form", "capability",
               "Set twelve-week growth goals so “{step}” continues as you enter early career life."),
        ),
    },
    "community": {
        "do-now": (
            _t("Join a King's Edge community action workshop", "intensive", "capability",
               "Explore facilitation tools you can apply to “{step}” in the next few weeks."),
            _t("Support a King's Edge local partnership project", "sustained", "capital",
               "Take on a bite-sized volunteering challenge with peers and reflect on community impact together."),
            _t("Book King's Edge mentoring to map community roles", "sustained", "capability",
               "Plan how societies, networks and neighbourhood groups can plug into your idea."),
        ),
        "do-later": (
            _t("Reserve a King's Edge volunteer leadership workshop", "intensive", "capability",
               "Schedule leadership training so you can run “{step}” next term with confidence."),
            _t("Plan a term-long King's Edge volunteering project", "sustained", "capital",
               "Design a structured programme with partners, budgeting time and impact goals for the term."),
            _t("Meet with King's Edge coaching to align societies", "short_form", "capability",
               "Coordinate cross-society collaboration and map stakeholder asks ahead of delivery."),
        ),
        "before-graduation": (
            _t("Complete a King's Edge civic leadership short course", "short_form", "capability",
               "Gain recognised training in civic leadership that underlines “{step}”."),
            _t("Lead a community change project via King's Edge", "sustained", "capital",
               "Deliver a substantial social impact project with monitoring, evaluation and storytelling."),
            _t("Curate a reflective community impact portfolio", "sustained", "capability",
               "Capture case studies, testimonies and metrics that evidence the change you have led."),
        ),
        "after-graduation": (
            _t("Attend a King's Edge alumni civic impact meetup", "evergreen", "capital",
               "Connect with alumni working in charities, councils and social enterprises to stay plugged in."),
            _t("Join a King's Edge alumni community partnership sprint", "sustained", "capital",
               "Work with graduates on a short civic challenge with clear deliverables and reflection."),
            _t("Work with King's Edge coaching on post-grad civic plans", "short_form", "capability",
               "Create a roadmap for keeping “{step}” alive as you settle into work or further study."),
        ),
    },
    "general": {
        "do-now": (
            _t("Join a King's Edge professional storytelling workshop", "intensive", "capability",
               "Practise telling the story of “{step}” so you can explain it clearly to staff and employers."),
            _t("Take on a King's Edge mini project shadow", "sustained", "credibility",
               "Spend a week shadowing a cross-disciplinary project team and contribute a small deliverable."),
            _t("Book King's Edge coaching for quick reflection", "short_form", "capability",
               "Capture what you are learning now and log actions to keep momentum."),
        ),
        "do-later": (
            _t("Reserve a King's Edge skills studio", "intensive", "capability",
               "Line up a studio-style workshop next term to rehearse the presentations or demos linked to “{step}”."),
            _t("Plan a King's Edge cross-discipline project", "sustained", "credibility",
               "Bring together peers from multiple courses to tackle a shared brief over the term."),
            _t("Schedule mentoring to map your medium-term plan", "sustained", "capability",
               "Translate ambitions into milestones covering skills, evidence and supporters."),
        ),
        "before-graduation": (
            _t("Complete a King's Edge professional micro-credential", "short_form", "capability",
               "Gain a credential that proves how “{step}” has developed your professional practice."),
            _t("Lead a King's Edge showcase project", "sustained", "credibility",
               "Coordinate a showcase with partners, comms and evaluation before you leave King's."),
            _t("Curate a portfolio review with King's Edge", "sustained", "capability",
               "Gather artefacts, testimonials and next steps ready for graduate applications."),
        ),
        "after-graduation": (
            _t("Attend a King's Edge alumni networking salon", "evergreen", "capital",
               "Meet alumni from different sectors to exchange tactics for the first year after graduation."),
            _t("Join a King's Edge alumni transition project", "sustained", "credibility",
               "Collaborate on a short consultancy-style brief that keeps your skills sharp between applications."),
            _t("Work with King's Edge coaching on a first-year-out plan", "short_form", "capability",
               "Create a personal roadmap so “{step}” keeps evolving once you're alumni."),
        ),
    },
}


def build_edge_drafts(
    step_title: str,
    intention_title: str | None = None,
    bucket_id: str | None = None,
) -> list[OpportunityDraft]:
    """Edge-simulated drafts for the step's theme and bucket, in library order."""
    step = str(step_title or "").strip()
    if not step:
        raise ValueError("step_title is required")
    intention = str(intention_title or "").strip()
    bucket = normalize_bucket(bucket_id) or "do-now"

    fields = {
        "step": step,
        "for_intention": f" for {intention}" if intention else "",
        "linked_intention": f" linked to {intention}" if intention else "",
    }
    return [
        OpportunityDraft(
            title=t.title,
            summary=t.summary.format(**fields),
            source="edge_simulated",
            form=t.form,
            focus=[t.focus],
        )
        for t in _EDGE_TEMPLATES[infer_theme(step, intention)][bucket]
    ]


def build_template_drafts(
    step_title: str,
    intention_title: str | None = None,
    bucket_id: str | None = None,
) -> list[OpportunityDraft]:
    """A full batch without a model: the edge drafts plus one independent draft."""
    return [
        *build_edge_drafts(step_title, intention_title, bucket_id),
        build_independent_draft(step_title, intention_title, bucket_id),
    ]
