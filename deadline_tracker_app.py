import asyncio
from datetime import date
from typing import List

import streamlit as st

from deadline_tracker import (
    DebouncedSearch,
    DirectoryClient,
    FileKeyValueStore,
    Institution,
    ReminderConfigSession,
    ReminderNotifier,
    TrackedDeadlineStore,
    TrackerConfig,
    WorkflowState,
    provide_tracked_deadlines,
    use_tracked_deadlines,
)
from deadline_tracker.eligibility import classify, describe_days, remaining_days
from deadline_tracker.logging_utils import setup_logging
from deadline_tracker.models import TrackedDeadline, make_deadline_id
from deadline_tracker.notifications import format_deadline_date
from deadline_tracker.directory import track_deadline
from deadline_tracker.reminders import INVALID_DAYS_MESSAGE, unsubscribe


VERSION = "1.0.0"

STATUS_ICONS = {
    "Past Due": "🔴",
    "Due Today": "🔴",
    "Due Soon": "🟠",
    "Upcoming": "🟡",
    "Future": "⚪",
    "Unknown date": "❔",
}


@st.cache_resource
def get_config() -> TrackerConfig:
    cfg = TrackerConfig.from_env()
    setup_logging(cfg.log_level, debug=cfg.debug)
    return cfg


@st.cache_resource
def get_profile_storage(path: str) -> FileKeyValueStore:
    # Shared by every session of this server so writes reach the other tabs
    return FileKeyValueStore(path)


@st.cache_resource
def get_notifier(_cfg: TrackerConfig) -> ReminderNotifier:
    return ReminderNotifier(_cfg)


def get_search(cfg: TrackerConfig) -> DebouncedSearch:
    if "directory_search" not in st.session_state:
        client = DirectoryClient(cfg.directory_url, timeout=cfg.request_timeout, max_results=cfg.search_max_results)
        st.session_state.directory_search = DebouncedSearch(client, delay=cfg.search_debounce_seconds)
    return st.session_state.directory_search


def get_recipient(cfg: TrackerConfig) -> str:
    st.sidebar.markdown("### Email Reminders")
    default_email = st.session_state.get("user_email_input", "") or cfg.user_email
    email = st.sidebar.text_input("Your email address", value=default_email, key="user_email_input")
    if not cfg.email_configured():
        st.sidebar.warning("Email is not configured (RESEND_API_KEY). Settings will be saved locally only.")
    return email.strip()


def handle_unsubscribe_link(store: TrackedDeadlineStore, notifier: ReminderNotifier) -> None:
    params = st.query_params
    if "deadlineId" not in params and "email" not in params:
        return
    email = params.get("email", "")
    deadline_ref = params.get("deadlineId", "")
    try:
        result = unsubscribe(store, notifier, email, deadline_ref)
    except ValueError as e:
        st.error(str(e))
    else:
        st.success(f"**Successfully Unsubscribed.** {result.message}")
        if result.email_sent:
            st.caption("A confirmation email has been sent to your inbox.")
    st.query_params.clear()


def render_search(store: TrackedDeadlineStore, cfg: TrackerConfig) -> None:
    st.subheader("Search Institutions")
    query = st.text_input("Search by institution name...", key="institution_query")
    search = get_search(cfg)

    if query != st.session_state.get("last_query"):
        st.session_state.last_query = query
        with st.spinner("Searching..."):
            results = asyncio.run(search.submit(query))
        if results is not None:
            st.session_state.search_results = results

    institutions: List[Institution] = st.session_state.get("search_results", [])
    if not query:
        st.caption("Start typing to search for institutions...")
        return
    if not institutions:
        st.caption("No institutions found. Try a different search term.")
        return

    for institution in institutions:
        count = len(institution.deadlines)
        label = f"🎓 {institution.name} · {count} deadline{'s' if count != 1 else ''}"
        with st.expander(label):
            st.caption(institution.website)
            if not institution.deadlines:
                st.caption("No deadlines listed for this institution yet.")
            for deadline in institution.deadlines:
                deadline_id = make_deadline_id(institution, deadline)
                col_info, col_action = st.columns([4, 1])
                with col_info:
                    st.markdown(f"**{deadline.title}**  \n{format_deadline_date(deadline.date)}")
                with col_action:
                    if store.contains(deadline_id):
                        st.button("Tracked ✓", key=f"tracked_{deadline_id}", disabled=True)
                    elif st.button("Track", key=f"track_{deadline_id}"):
                        track_deadline(store, institution, deadline)
                        st.rerun()


def show_outcome(outcome) -> None:
    if outcome.state == WorkflowState.SUCCEEDED:
        st.toast(f"✅ {outcome.message} {outcome.detail}")
    elif outcome.state == WorkflowState.SAVED_LOCALLY_ONLY:
        st.toast(f"⚠️ {outcome.message}. {outcome.detail}")
    elif outcome.state == WorkflowState.FAILED:
        st.error(f"{outcome.message}. {outcome.detail}")


def render_reminder_settings(
    store: TrackedDeadlineStore, notifier: ReminderNotifier, recipient: str, deadline: TrackedDeadline
) -> None:
    key = deadline.deadline_id
    try:
        session = ReminderConfigSession(store, notifier, recipient, key)
    except KeyError:
        return
    enabled = st.toggle("Enable Email Reminders", value=session.reminder_enabled, key=f"rem_on_{key}")
    days_input = session.days_input
    if enabled:
        days_input = st.text_input("Days Before Deadline", value=session.days_input, key=f"rem_days_{key}")
        if session.save_allowed(True, days_input):
            st.caption(session.preview(days_input))
        else:
            st.caption(f":red[{INVALID_DAYS_MESSAGE}]")
    if st.button("Save Settings", key=f"rem_save_{key}", disabled=not session.save_allowed(enabled, days_input)):
        with st.spinner("Saving..."):
            outcome = session.save(enabled, days_input)
        if outcome.rejected:
            st.error(outcome.message)
        else:
            st.session_state.last_outcome = outcome
            st.rerun()


def render_dashboard(store: TrackedDeadlineStore, notifier: ReminderNotifier, recipient: str) -> None:
    st.subheader("Application Deadlines")
    deadlines = store.sorted_by_date()
    today = date.today()
    if not deadlines:
        st.info("**No Deadlines Tracked.** Start tracking application deadlines by searching for institutions and selecting deadlines.")
        return

    for deadline in deadlines:
        remaining = remaining_days(deadline.date, today)
        status = classify(remaining)
        bell = "🔔" if deadline.reminder_enabled else "🔕"
        header = (
            f"{STATUS_ICONS.get(status.label, '⚪')} {deadline.title} · {deadline.institution_name} "
            f"· {format_deadline_date(deadline.date)} · {describe_days(remaining)} {bell}"
        )
        with st.expander(header):
            col1, col2 = st.columns([3, 1])
            with col1:
                st.text(f"Status: {status.label}")
                if deadline.institution_website:
                    st.markdown(f"[Visit website]({deadline.institution_website})")
            with col2:
                if st.button("Remove", key=f"remove_{deadline.deadline_id}"):
                    store.remove(deadline.deadline_id)
                    st.rerun()
            st.divider()
            render_reminder_settings(store, notifier, recipient, deadline)

    st.caption(f"Showing {len(deadlines)} tracked deadline{'s' if len(deadlines) != 1 else ''}")


def main():
    st.title("College Application Tracker")
    st.caption("Search institutions, track their deadlines and get email reminders before they are due")

    cfg = get_config()
    storage = get_profile_storage(cfg.profile_path)
    provide_tracked_deadlines(st.session_state, TrackedDeadlineStore(storage))
    store = use_tracked_deadlines(st.session_state)
    store.sync()
    notifier = get_notifier(cfg)
    recipient = get_recipient(cfg)

    handle_unsubscribe_link(store, notifier)

    outcome = st.session_state.pop("last_outcome", None)
    if outcome is not None:
        show_outcome(outcome)

    if not store.persisted:
        st.warning("Your tracked deadlines could not be saved to this profile yet. Changes are kept for this session.")

    tab_dashboard, tab_search = st.tabs(["📅 Dashboard", "🔍 Add Institution"])
    with tab_dashboard:
        render_dashboard(store, notifier, recipient)
    with tab_search:
        render_search(store, cfg)

    st.sidebar.divider()
    st.sidebar.caption(f"Deadline Tracker v{VERSION}")


if __name__ == "__main__":
    main()
