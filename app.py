"""Streamlit UI for job search, match analysis and application history."""
from __future__ import annotations

import sys
from pathlib import Path

import pandas as pd
import streamlit as st

ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(ROOT))

from jobmatch.agent import JobSearchAgent
from jobmatch.archiver import ApplicationArchiver
from jobmatch.config import ensure_dirs, get_env, load_search_config
from jobmatch.errors import JobSearchError
from jobmatch.log import get_logger
from jobmatch.models import Job, SearchFilters
from jobmatch.oracle import build_oracle
from jobmatch.resume_parser import extract_text_from_stream, load_resume_text
from jobmatch.scorer import MatchScorer
from jobmatch.session import SessionStateStore, TabStorageRegistry
from jobmatch.sources import get_source
from jobmatch.tracker import ApplicationTracker

log = get_logger(__name__)

# ── Constants ────────────────────────────────────────────────────────────

COUNTRIES: dict[str, str] = {
    "fr": "France",
    "gb": "United Kingdom",
    "us": "United States",
    "de": "Germany",
    "ca": "Canada",
}

DATE_POSTED: dict[int | None, str] = {
    None: "Any time",
    1: "Last 24 hours",
    3: "Last 3 days",
    7: "Last 7 days",
    14: "Last 14 days",
    30: "Last 30 days",
}

TAB_PARAM = "tab"


# ── Composition ──────────────────────────────────────────────────────────


@st.cache_resource
def _services():
    """Process-wide collaborators, built once per server process."""
    ensure_dirs()
    config = load_search_config()
    oracle = build_oracle(config)
    return config, get_source(config), oracle, ApplicationTracker()


@st.cache_resource
def _tab_registry() -> TabStorageRegistry:
    return TabStorageRegistry()


def _tab_storage():
    """Storage for this browser tab; the token rides in the URL across reloads."""
    token = st.session_state.get("_tab_token") or st.query_params.get(TAB_PARAM)
    if not TabStorageRegistry.is_valid_token(token):
        token = TabStorageRegistry.new_token()
    st.session_state["_tab_token"] = token
    if st.query_params.get(TAB_PARAM) != token:
        st.query_params[TAB_PARAM] = token
    return _tab_registry().storage_for(token)


def _agent() -> JobSearchAgent:
    storage = _tab_storage()
    if "_agent" not in st.session_state:
        config, source, oracle, tracker = _services()
        st.session_state["_agent"] = JobSearchAgent(
            source=source,
            scorer=MatchScorer(oracle),
            archiver=ApplicationArchiver(oracle, tracker, config.language),
            oracle=oracle,
            store=SessionStateStore(storage, default_filters=config.default_filters),
            config=config,
        )
    return st.session_state["_agent"]


def _resume() -> str:
    return st.session_state.get("resume_text") or ""


def _user() -> str:
    return st.session_state.get("user_id") or ""


def _notify(error: JobSearchError | None, fallback: str) -> None:
    st.error(str(error) if error else fallback)


# ── Sidebar ──────────────────────────────────────────────────────────────


def _sidebar() -> None:
    with st.sidebar:
        st.session_state.setdefault("user_id", get_env("JOBMATCH_USER"))
        st.text_input("Signed in as", key="user_id", placeholder="user id")

        if "resume_text" not in st.session_state:
            try:
                st.session_state["resume_text"] = load_resume_text() or ""
            except JobSearchError as exc:
                st.warning(str(exc))
                st.session_state["resume_text"] = ""

        uploaded = st.file_uploader("Base resume", type=["pdf", "docx", "txt"])
        if uploaded is not None and st.session_state.get("_resume_name") != uploaded.name:
            try:
                st.session_state["resume_text"] = extract_text_from_stream(uploaded, uploaded.name)
                st.session_state["_resume_name"] = uploaded.name
                st.success(f"Loaded {uploaded.name}")
            except JobSearchError as exc:
                st.error(str(exc))

        st.caption(f"Resume: {'ready' if _resume() else 'missing'}")


# ── Page: Job Search ─────────────────────────────────────────────────────


def _search(agent: JobSearchAgent, filters: SearchFilters) -> None:
    with st.spinner("Searching jobs…"):
        result = agent.search(filters)
    st.session_state["sort_by_match"] = False
    if not result.ok:
        _notify(result.error, "Failed to fetch jobs")
    elif not result.value.jobs:
        st.info("No jobs found. Try adjusting your search criteria.")


def _filters_form(agent: JobSearchAgent) -> None:
    current = agent.state.filters
    with st.form("filters"):
        c1, c2 = st.columns(2)
        what = c1.text_input("What", value=current.what, placeholder="Job title, keywords, or company")
        where = c2.text_input("Where", value=current.where, placeholder="City, region, or postcode")

        c3, c4, c5 = st.columns(3)
        codes = list(COUNTRIES)
        country = c3.selectbox(
            "Country", codes,
            index=codes.index(current.country) if current.country in COUNTRIES else 0,
            format_func=COUNTRIES.get,
        )
        ages = list(DATE_POSTED)
        max_days_old = c4.selectbox(
            "Date posted", ages,
            index=ages.index(current.max_days_old) if current.max_days_old in DATE_POSTED else 0,
            format_func=DATE_POSTED.get,
        )
        page = c5.number_input("Page", min_value=1, value=current.page, step=1)

        if st.form_submit_button("Find Jobs", type="primary", use_container_width=True):
            _search(
                agent,
                current.with_changes(
                    what=what, where=where, country=country, max_days_old=max_days_old, page=int(page)
                ),
            )


def _suggestions(agent: JobSearchAgent) -> None:
    c1, c2 = st.columns([3, 1])
    c1.markdown("**AI job suggestions**")
    if c2.button("Suggest titles", use_container_width=True):
        with st.spinner("Reading your resume…"):
            result = agent.suggest_titles(_resume())
        if result.ok:
            st.session_state["suggestions"] = result.value
        else:
            _notify(result.error, "Failed to generate suggestions")

    suggestions: list[str] = st.session_state.get("suggestions", [])
    if suggestions:
        cols = st.columns(min(len(suggestions), 4))
        for i, title in enumerate(suggestions):
            if cols[i % len(cols)].button(title, key=f"suggestion_{i}"):
                _search(agent, agent.state.filters.with_changes(what=title, page=1))


def _analysis_bar(agent: JobSearchAgent) -> None:
    jobs = agent.state.jobs
    c1, c2, c3 = st.columns(3)
    if jobs and c1.button("Best match", use_container_width=True):
        st.session_state["sort_by_match"] = True
        with st.spinner("Scoring jobs against your resume…"):
            result = agent.analyze_next_batch(_resume())
        if result.ok:
            st.info(result.value.summary(agent.scored_count, len(jobs)))
        else:
            _notify(result.error, "Could not analyze jobs. Please try again.")

    if agent.state.filters.has_criteria() and c3.button("Reset filters", use_container_width=True):
        agent.reset()
        st.session_state["sort_by_match"] = False
        st.session_state.pop("suggestions", None)
        st.rerun()
    if jobs:
        c2.toggle("Sort by match", key="sort_by_match")


def _job_card(agent: JobSearchAgent, job: Job) -> None:
    score = agent.state.score_map.get(job.id)
    with st.container(border=True):
        c1, c2 = st.columns([4, 1])
        c1.markdown(f"**{job.title}**  \n{job.company} · {job.location}")
        meta = " · ".join(x for x in (job.category, job.salary, job.date_posted[:10]) if x)
        if meta:
            c1.caption(meta)
        if score is not None:
            c2.metric("Match", f"{score.matching_score}%")
            if score.matching_skills:
                st.markdown("✅ " + ", ".join(score.matching_skills))
            if score.lacking_skills:
                st.markdown("⚠️ " + ", ".join(score.lacking_skills))

        with st.expander("Description"):
            st.write(job.description)

        b1, b2 = st.columns(2)
        if job.url:
            b1.link_button("Apply", job.url, use_container_width=True)
        saved = agent.is_saved(job.id)
        label = "Saved" if saved else "Save to history"
        if b2.button(label, key=f"save_{job.id}", disabled=saved or score is None, use_container_width=True):
            with st.spinner("Creating tailored resume and cover letter…"):
                result = agent.archive(job, _resume(), _user())
            if result.ok:
                st.success("Saved to history!")
                st.rerun()
            else:
                _notify(result.error, "Could not save to history")


def page_search() -> None:
    st.header("Job Search")
    agent = _agent()

    _filters_form(agent)
    _suggestions(agent)
    _analysis_bar(agent)

    jobs = agent.ranked_jobs(st.session_state.get("sort_by_match", False))
    if not jobs:
        st.info("No jobs yet. Enter a search above.")
        return
    st.caption(f"{len(jobs)} jobs · {agent.scored_count} analyzed")
    for job in jobs:
        _job_card(agent, job)


# ── Page: Application History ────────────────────────────────────────────


def page_history() -> None:
    st.header("Application History")
    if not _user():
        st.warning("Sign in (sidebar) to see your applications.")
        return

    _, _, _, tracker = _services()
    try:
        records = tracker.get_applications(_user())
    except JobSearchError as exc:
        st.error(str(exc))
        return
    if not records:
        st.info("No applications saved yet.")
        return

    df = pd.DataFrame(
        [
            {
                "title": r.job_title,
                "company": r.company,
                "score": r.matching_score,
                "saved_at": r.created_at,
                "url": r.application_link,
            }
            for r in records
        ]
    )
    st.dataframe(
        df,
        use_container_width=True,
        column_config={
            "url": st.column_config.LinkColumn("Apply Link"),
            "score": st.column_config.ProgressColumn("Score", min_value=0, max_value=100, format="%d%%"),
        },
        hide_index=True,
    )

    for r in records:
        with st.expander(f"{r.job_title} — {r.company}"):
            tab_letter, tab_resume = st.tabs(["Cover letter", "Tailored resume"])
            tab_letter.markdown(r.cover_letter)
            tab_resume.markdown(r.tailored_resume)


def _wrap_search():
    _sidebar()
    page_search()


def _wrap_history():
    _tab_storage()
    _sidebar()
    page_history()


pages = [
    st.Page(_wrap_search, title="Job Search", icon="🔎", url_path="search", default=True),
    st.Page(_wrap_history, title="History", icon="📋", url_path="history"),
]

nav = st.navigation(pages)
nav.run()
