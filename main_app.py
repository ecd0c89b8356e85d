"""
Movie Night Tracker - Streamlit UI
Log screenings, rate them as a group and explore who picks best and who agrees with whom.
"""

import streamlit as st
import sys
import os
import base64
from datetime import date

import pandas as pd
import plotly.express as px

# =============================================================================
# IMPORTS AND SETUP
# =============================================================================

# Add src directory to path for imports
current_dir = os.path.dirname(os.path.abspath(__file__))
src_dir = os.path.join(current_dir, 'src')

if src_dir not in sys.path:
    sys.path.insert(0, src_dir)

from data_store import (
    BACKUP_FILE_NAME,
    load_app_data,
    save_app_data,
    save_app_data_to_sheet,
    load_app_data_from_sheet,
    export_app_data_json,
    import_app_data_json,
    movies_to_dataframe,
    build_movie_record,
    lookup_metadata_for,
    upsert_movie,
    delete_movie,
    add_participant,
    update_participant,
    query_movie_log,
)
from stats_engine import (
    compute_statistics,
    compute_dashboard_summary,
    sort_leaderboard,
    movie_average,
    participant_name,
)
from metadata_service import fetch_movie_metadata
from recommendation_service import (
    collect_participant_ratings,
    collect_movie_stats,
    generate_taste_profile,
    generate_group_recommendations,
    generate_personal_recommendations,
    MIN_RATINGS_FOR_PROFILE,
)
from utils import (
    AVATAR_COLORS,
    DEFAULT_RATING_SCORE,
    MAX_SCORE,
    SCORE_STEP,
    STREAK_THRESHOLD,
    format_score,
    synergy_band,
)

APP_TITLE = "Four Stars Out of Five"
VIEWS = ["Dashboard", "Log", "Stats", "Oracle", "Settings"]

# =============================================================================
# SESSION STATE MANAGEMENT
# =============================================================================

def initialize_session_state():
    """Initialize all required session state variables."""

    if "app_data" not in st.session_state:
        st.session_state.app_data = load_app_data()

    if "cloud_sync" not in st.session_state:
        st.session_state.cloud_sync = False

    # Add / edit flow
    if "editing_movie_id" not in st.session_state:
        st.session_state.editing_movie_id = None

    if "draft_metadata" not in st.session_state:
        st.session_state.draft_metadata = None

    if "oracle_result" not in st.session_state:
        st.session_state.oracle_result = None


def commit(new_data):
    """Make new_data the current snapshot and persist it."""
    st.session_state.app_data = new_data
    save_app_data(new_data)
    if st.session_state.cloud_sync:
        save_app_data_to_sheet(new_data)

# =============================================================================
# UI HELPERS
# =============================================================================

def render_avatar(participant, size=48):
    """Round avatar: uploaded image if there is one, else the participant's colour."""
    if participant is None:
        st.markdown("❔")
        return
    if participant.avatar_url:
        st.image(participant.avatar_url, width=size)
    else:
        st.markdown(
            f'<div style="width:{size}px;height:{size}px;border-radius:50%;'
            f'background-color:{participant.avatar_color};"></div>',
            unsafe_allow_html=True
        )


def render_award(title, subtitle, participant, detail, empty_text):
    st.markdown(f"#### {title}")
    st.caption(subtitle.upper())
    if participant is None:
        st.markdown(f"*{empty_text}*")
        return
    col1, col2 = st.columns([1, 3])
    with col1:
        render_avatar(participant)
    with col2:
        st.markdown(f"**{participant.name}**")
        st.markdown(detail)

# =============================================================================
# VIEWS
# =============================================================================

def render_dashboard(data):
    summary = compute_dashboard_summary(data)

    st.markdown(f"# {APP_TITLE}")

    if summary.recent_quotes:
        quote_movie = summary.recent_quotes[0]
        st.markdown(f'> "{quote_movie.quote}"\n>\n> — {quote_movie.title}')
    else:
        st.markdown('> "Information Action Ratio"\n>\n> — Tranquility Base')

    col1, col2, col3 = st.columns(3)
    col1.metric("Total Screenings", summary.total_screenings)
    col2.metric("Group Average", format_score(summary.group_average))
    col3.metric("Active Members", summary.active_members)

    st.markdown("### Recent Screenings")
    if not summary.recent_movies:
        st.info("Nothing logged yet. Use **Log a screening** in the sidebar.")
        return

    cols = st.columns(len(summary.recent_movies))
    for col, movie in zip(cols, summary.recent_movies):
        with col:
            if movie.poster_url:
                st.image(movie.poster_url, use_container_width=True)
            st.markdown(f"**{movie.title}** ({movie.release_year or 'Unknown'})")
            st.caption(f"Picked by {participant_name(data, movie.selector_id)} · {movie.date_watched:%b %d, %Y}")
            st.markdown(f"⭐ {movie_average(movie):.1f}")


def render_log(data):
    st.markdown("## Cinema Log")

    col1, col2 = st.columns([3, 1])
    with col1:
        search_term = st.text_input("Search archives...", key="log_search")
    with col2:
        sort_label = st.selectbox("Sort", ["Date", "Rating"], key="log_sort")

    movies = query_movie_log(data.movies, search_term, sort_by=sort_label.lower())
    if not movies:
        st.info("No screenings match.")

    for movie in movies:
        with st.expander(f"{movie.title} · {movie.date_watched.isoformat()} · ⭐ {movie_average(movie):.1f}"):
            col1, col2 = st.columns([1, 3])
            with col1:
                if movie.poster_url:
                    st.image(movie.poster_url, use_container_width=True)
            with col2:
                st.markdown(f"**Picked by:** {participant_name(data, movie.selector_id)}")
                if movie.director:
                    st.markdown(f"**Director:** {movie.director}")
                if movie.genres:
                    st.markdown(f"**Genres:** {', '.join(movie.genres)}")
                if movie.venue:
                    st.markdown(f"**Venue:** {movie.venue}")
                if movie.official_rating:
                    st.markdown(f"**Official rating:** {movie.official_rating}")
                if movie.synopsis:
                    st.markdown(movie.synopsis)
                if movie.quote:
                    st.markdown(f'*"{movie.quote}"*')

                for rating in movie.ratings:
                    st.markdown(f"- {participant_name(data, rating.user_id)}: {rating.score:g}")

                bcol1, bcol2 = st.columns(2)
                with bcol1:
                    if st.button("✏️ Edit", key=f"edit_{movie.id}"):
                        st.session_state.editing_movie_id = movie.id
                        st.session_state.draft_metadata = None
                        st.rerun()
                with bcol2:
                    if st.button("🗑️ Delete", key=f"delete_{movie.id}"):
                        commit(delete_movie(data, movie.id))
                        st.rerun()


def render_stats(data):
    stats = compute_statistics(data)

    st.markdown("## Data Analytics")
    st.caption("Patterns in the static")

    # Awards
    col1, col2, col3 = st.columns(3)
    with col1:
        curator = stats.best_curator
        render_award("All-Time Best Curator", "Highest Avg Selection",
                     curator.participant if curator else None,
                     f"Avg: {curator.average:.1f}" if curator else "",
                     "No contenders yet.")
    with col2:
        critic = stats.harshest_critic
        render_award("The Harshest Critic", "Lowest Avg Given",
                     critic.participant if critic else None,
                     f"Avg: {critic.avg_given:.2f}" if critic else "",
                     "Everyone is too nice.")
    with col3:
        regular = stats.most_frequent
        render_award("The Regular", "Most Attendance",
                     regular.participant if regular else None,
                     f"{regular.attendance_count} Screenings" if regular else "",
                     "Empty theater.")

    left, right = st.columns([2, 1])

    with left:
        st.markdown("#### Generosity Index (Avg Rating Given)")
        ranked = sort_leaderboard(stats.leaderboard)
        if ranked:
            leaderboard_df = pd.DataFrame({
                "Name": [e.name for e in ranked],
                "Attended": [e.attendance_count for e in ranked],
                "Avg Given": [round(e.avg_given, 2) for e in ranked],
            })
            st.bar_chart(leaderboard_df.set_index("Name")["Avg Given"], horizontal=True)
            st.dataframe(leaderboard_df, hide_index=True, use_container_width=True)
        else:
            st.markdown("*No participants yet.*")

    with right:
        st.markdown("#### 🔥 Hot Streaks")
        if stats.streaks:
            for streak in stats.streaks:
                name = streak.participant.name if streak.participant else "Unknown"
                st.markdown(f"**{name}** — {streak.count} picks ≥ {STREAK_THRESHOLD:g}")
        else:
            st.markdown("*No active streaks.*")

        st.markdown("#### Genre Frequency")
        if stats.genres:
            st.bar_chart(pd.DataFrame({"count": [g.count for g in stats.genres]},
                                      index=[g.name for g in stats.genres]))
        else:
            st.markdown("*No data available.*")

        st.markdown("#### Location Tracking")
        if stats.venues:
            fig = px.pie(
                names=[v.name for v in stats.venues],
                values=[v.count for v in stats.venues],
                hole=0.4,
                color_discrete_sequence=AVATAR_COLORS,
            )
            st.plotly_chart(fig, use_container_width=True)
        else:
            st.markdown("*No data available.*")

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("#### Director's Cut (Top Avg)")
        for d in stats.directors:
            st.markdown(f"**{d.name}** ({d.count} watched) — {d.average:.1f}")
        if not stats.directors:
            st.markdown("*No data available.*")
    with col2:
        st.markdown("#### Temporal Drift (Decades)")
        if stats.decades:
            st.bar_chart(pd.DataFrame({"count": [d.count for d in stats.decades]},
                                      index=[d.label for d in stats.decades]))
        else:
            st.markdown("*No data available.*")

    render_synergy(data, stats)


def render_synergy(data, stats):
    st.markdown("## Attendee Synergy Index")
    st.caption("Correlation & Conflict Heatmap")

    col1, col2 = st.columns(2)
    for col, title, subtitle, pair in (
        (col1, "Mind Meld", "Highest Agreement", stats.highest_synergy),
        (col2, "Polar Opposites", "Highest Disagreement", stats.lowest_synergy),
    ):
        with col:
            st.markdown(f"#### {title}")
            st.caption(subtitle.upper())
            if pair:
                st.metric(f"{pair.participant_1.name} & {pair.participant_2.name}", f"{pair.score:.0f}%")
            else:
                st.markdown("*Insufficient data*")

    if not data.participants:
        return

    names = [p.name for p in data.participants]
    cells = []
    for row_p in data.participants:
        row = []
        for col_p in data.participants:
            score = stats.synergy_matrix.get(row_p.id, {}).get(col_p.id)
            row.append("—" if score is None else f"{score:.0f}%")
        cells.append(row)
    heatmap = pd.DataFrame(cells, index=names, columns=names)

    band_styles = {
        "high": "color: #cba163; font-weight: bold",
        "low": "color: #b95c34; font-weight: bold",
        "neutral": "",
        "none": "opacity: 0.3",
    }

    def style_cell(value):
        score = None if value == "—" else float(value.rstrip("%"))
        return band_styles[synergy_band(score)]

    st.dataframe(heatmap.style.map(style_cell), use_container_width=True)
    st.caption("* Synergy based on avg rating difference on shared movies. 100% = Perfect Agreement.")


def render_oracle(data):
    st.markdown("## THE ORACLE")
    st.caption("ALGORITHMIC INSIGHT ENGINE")

    mode = st.radio("Mode", ["Taste Profile", "Recommendations"], horizontal=True)

    if mode == "Taste Profile":
        options = {p.id: p.name for p in data.participants}
        participant_id = st.selectbox("Select Participant...", list(options), format_func=options.get)
        col1, col2 = st.columns(2)
        with col1:
            analyze = st.button("Analyze", disabled=participant_id is None)
        with col2:
            personal = st.button("Personal Picks", disabled=participant_id is None)

        if analyze or personal:
            name = options[participant_id]
            ratings = collect_participant_ratings(data, participant_id)
            with st.spinner("Consulting the mainframe..."):
                try:
                    if analyze:
                        if len(ratings) < MIN_RATINGS_FOR_PROFILE:
                            st.session_state.oracle_result = (
                                f"This subject requires more observation (min {MIN_RATINGS_FOR_PROFILE} ratings)."
                            )
                        else:
                            st.session_state.oracle_result = generate_taste_profile(name, ratings)
                    else:
                        st.session_state.oracle_result = generate_personal_recommendations(name, ratings)
                except (RuntimeError, ValueError) as e:
                    st.error(f"❌ Error communicating with the mainframe: {e}")
                    st.session_state.oracle_result = None
    else:
        if st.button("Generate"):
            with st.spinner("Consulting the mainframe..."):
                try:
                    st.session_state.oracle_result = generate_group_recommendations(collect_movie_stats(data))
                except (RuntimeError, ValueError) as e:
                    st.error(f"❌ Error communicating with the mainframe: {e}")
                    st.session_state.oracle_result = []

    result = st.session_state.oracle_result
    if isinstance(result, str):
        st.markdown(result)
    elif result:
        for rec in result:
            st.markdown(f"**{rec['title']}** ({rec['year']})")
            st.markdown(f"_{rec['pitch']}_")


def render_settings(data):
    st.markdown("## Management")

    st.markdown("### Participants")
    for participant in data.participants:
        col1, col2, col3 = st.columns([1, 3, 2])
        with col1:
            render_avatar(participant, size=36)
        with col2:
            new_name = st.text_input("Name", value=participant.name, key=f"name_{participant.id}",
                                     label_visibility="collapsed")
        with col3:
            upload = st.file_uploader("Avatar", type=["png", "jpg", "jpeg"], key=f"avatar_{participant.id}",
                                      label_visibility="collapsed")
        if st.button("Save", key=f"save_{participant.id}"):
            avatar_url = participant.avatar_url
            if upload is not None:
                encoded = base64.b64encode(upload.getvalue()).decode("ascii")
                avatar_url = f"data:{upload.type};base64,{encoded}"
            try:
                commit(update_participant(data, participant.id, new_name, avatar_url))
                st.rerun()
            except ValueError as e:
                st.error(str(e))

    with st.form("add_participant", clear_on_submit=True):
        name = st.text_input("New participant")
        if st.form_submit_button("Add"):
            try:
                commit(add_participant(data, name))
                st.rerun()
            except ValueError as e:
                st.error(str(e))

    st.markdown("### Backup")
    st.download_button("Export JSON", export_app_data_json(data), file_name=BACKUP_FILE_NAME,
                       mime="application/json")
    st.download_button("Export CSV", movies_to_dataframe(data).to_csv(index=False),
                       file_name="movie_log.csv", mime="text/csv")

    import_text = st.text_area("Paste a JSON backup to restore")
    if st.button("Import"):
        try:
            commit(import_app_data_json(import_text))
            st.success("Database updated successfully.")
            st.rerun()
        except ValueError as e:
            st.error(str(e))

    st.markdown("### Cloud Sync")
    st.session_state.cloud_sync = st.checkbox("Save every change to Google Sheets",
                                              value=st.session_state.cloud_sync)
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Push to Google Sheets"):
            if save_app_data_to_sheet(data):
                st.success("✅ Synced.")
    with col2:
        if st.button("Pull from Google Sheets"):
            remote = load_app_data_from_sheet()
            if remote is None:
                st.warning("Nothing to pull.")
            else:
                commit(remote)
                st.rerun()

# =============================================================================
# ADD / EDIT SCREENING
# =============================================================================

def close_editor():
    st.session_state.editing_movie_id = None
    st.session_state.draft_metadata = None


def render_movie_editor(data):
    """Two-step add flow (lookup, then details) or straight to details when editing."""
    editing_id = st.session_state.editing_movie_id
    existing = next((m for m in data.movies if m.id == editing_id), None) if editing_id != "new" else None

    st.markdown("## Edit Screening" if existing else "## Log a Screening")

    if existing is None and st.session_state.draft_metadata is None:
        with st.form("lookup"):
            title = st.text_input("Title")
            year = st.text_input("Year (optional)")
            director_hint = st.text_input("Director (optional)")
            submitted = st.form_submit_button("Search")
        if submitted and title:
            with st.spinner("🎯 Fetching metadata..."):
                metadata = fetch_movie_metadata(title, year or None, director_hint or None)
            st.session_state.draft_metadata = metadata or {"title": title, "release_year": year,
                                                           "director": director_hint}
            st.rerun()
        if st.button("Cancel"):
            close_editor()
            st.rerun()
        return

    if existing:
        metadata = lookup_metadata_for(existing)
        director_default = existing.director
        quote_default = existing.quote
        attendees_default = [r.user_id for r in existing.ratings]
        scores_default = {r.user_id: r.score for r in reversed(existing.ratings)}
    else:
        metadata = st.session_state.draft_metadata
        director_default = metadata.get("director")
        quote_default = metadata.get("quote")
        attendees_default = [p.id for p in data.participants]
        scores_default = {}

    if metadata.get("poster_url"):
        st.image(metadata["poster_url"], width=160)

    options = {p.id: p.name for p in data.participants}
    with st.form("screening"):
        title = st.text_input("Title", value=metadata.get("title") or "")
        selector_ids = list(options)
        selector_index = selector_ids.index(existing.selector_id) if existing and existing.selector_id in options else None
        selector_id = st.selectbox("Who picked it?", selector_ids, index=selector_index, format_func=options.get)
        watched = st.date_input("Date watched", value=existing.date_watched if existing else date.today())
        director = st.text_input("Director", value=director_default or "")
        venue = st.text_input("Venue", value=(existing.venue if existing else "") or "")
        quote = st.text_input("Quote", value=quote_default or "")
        attendees = st.multiselect("Attendees", selector_ids,
                                   default=[a for a in attendees_default if a in options],
                                   format_func=options.get)

        scores = {}
        for participant_id in selector_ids:
            scores[participant_id] = st.slider(
                options[participant_id], 0.0, MAX_SCORE,
                float(scores_default.get(participant_id, DEFAULT_RATING_SCORE)),
                step=SCORE_STEP, key=f"score_{participant_id}"
            )
        saved = st.form_submit_button("Save")

    if saved:
        # Keep ratings from people who have since left the roster
        kept = [r.user_id for r in existing.ratings if r.user_id not in options] if existing else []
        for user_id in kept:
            scores[user_id] = next(r.score for r in existing.ratings if r.user_id == user_id)
        try:
            # The form fields are authoritative; a blanked field clears the value
            metadata = dict(metadata, title=title, director=None, quote=None)
            movie = build_movie_record(
                title, selector_id, watched, attendees + kept, scores,
                metadata=metadata, director=director, quote=quote, venue=venue,
                movie_id=existing.id if existing else None,
            )
        except ValueError as e:
            st.error(str(e))
            return
        commit(upsert_movie(data, movie))
        close_editor()
        st.rerun()

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Cancel"):
            close_editor()
            st.rerun()
    with col2:
        if existing and st.button("🗑️ Delete"):
            commit(delete_movie(data, existing.id))
            close_editor()
            st.rerun()

# =============================================================================
# MAIN APPLICATION
# =============================================================================

def main():
    """Main application function."""
    st.set_page_config(
        page_title=APP_TITLE,
        page_icon="🎬",
        layout="wide",
    )

    initialize_session_state()
    data = st.session_state.app_data

    view = st.sidebar.radio("Navigate", VIEWS)
    if st.sidebar.button("➕ Log a screening"):
        st.session_state.editing_movie_id = "new"
        st.session_state.draft_metadata = None
        st.rerun()

    if st.session_state.editing_movie_id:
        render_movie_editor(data)
    elif view == "Dashboard":
        render_dashboard(data)
    elif view == "Log":
        render_log(data)
    elif view == "Stats":
        render_stats(data)
    elif view == "Oracle":
        render_oracle(data)
    else:
        render_settings(data)

if __name__ == "__main__":
    main()
