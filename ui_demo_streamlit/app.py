"""Streamlit demo UI for reminder-engine."""

from __future__ import annotations

import json
import tempfile
from collections import Counter
from datetime import date, datetime, time
from typing import Any

from reminder_engine.adapters import json_adapter
from reminder_engine.catalog import scope_catalog
from reminder_engine.schema import ReminderSettings, Role, Viewer
from reminder_engine.simulation import replay

DEMO_SNAPSHOT = "examples/sample_snapshot.json"


def _parse_uploaded(uploaded_file) -> json_adapter.Snapshot:
    with tempfile.NamedTemporaryFile(delete=False, suffix=".json") as handle:
        handle.write(uploaded_file.getbuffer())
        temp_path = handle.name
    return json_adapter.parse(temp_path)


def _build_summary(snapshot: json_adapter.Snapshot, viewer: Viewer) -> dict[str, Any]:
    catalog = scope_catalog(viewer, snapshot.courses, snapshot.exams, snapshot.meets)
    return {
        "courses": len(catalog.courses),
        "exams": len(catalog.exams),
        "meets": len(catalog.meets),
        "hidden": len(snapshot.courses) + len(snapshot.exams) + len(snapshot.meets) - len(catalog),
    }


def run_engine(
    snapshot: json_adapter.Snapshot,
    viewer: Viewer,
    start: datetime,
    minutes: int,
    settings: ReminderSettings,
    keep_alive: bool,
) -> dict[str, Any]:
    """Run a virtual session and return a UI-friendly result payload."""

    result = replay(snapshot, viewer, start, minutes, settings=settings, keep_alive=keep_alive)
    rows = [
        {
            "time": item.created_at.strftime("%a %H:%M"),
            "kind": item.kind.value,
            "message": item.message,
            "page": item.target_page or "",
        }
        for item in result["notifications"]
    ]
    return {
        "summary": _build_summary(snapshot, viewer),
        "rows": rows,
        "kinds": dict(Counter(row["kind"] for row in rows)),
        "ended_at": result["ended_at"],
        "logout_notice": result["logout_notice"],
    }


def main() -> None:
    import streamlit as st

    st.set_page_config(page_title="Reminder Engine Demo", layout="wide")
    st.title("Reminder Engine — Streamlit Demo")

    with st.sidebar:
        st.header("Viewer")
        uploaded = st.file_uploader("Upload portal snapshot", type=["json"])
        use_demo = st.checkbox("Load demo snapshot", value=True)
        role = st.selectbox("Role", options=[r.value for r in Role], index=2)
        class_id = st.text_input("Class id", value="c1")
        active = st.checkbox("Viewer keeps interacting", value=True)

        st.header("Reminders")
        enabled = st.checkbox("Reminders enabled", value=True)
        course_delay = st.number_input("Course lead (min)", min_value=0, max_value=240, value=15, step=5)
        exam_delay = st.number_input("Exam lead (min)", min_value=0, max_value=60 * 24 * 7, value=60 * 24, step=30)
        meet_delay = st.number_input("Meet lead (min)", min_value=0, max_value=240, value=30, step=5)

        st.header("Virtual clock")
        start_day = st.date_input("Start day", value=date(2025, 1, 6))
        start_time = st.time_input("Start time", value=time(7, 30))
        minutes = st.slider("Minutes to simulate", min_value=5, max_value=24 * 60, value=180, step=5)
        run = st.button("Run session", type="primary")

    if not run:
        st.info("Configure inputs in the sidebar and click **Run session**.")
        return

    try:
        if use_demo:
            snapshot = json_adapter.parse(DEMO_SNAPSHOT)
            data_source = f"demo snapshot ({DEMO_SNAPSHOT})"
        elif uploaded is not None:
            snapshot = _parse_uploaded(uploaded)
            data_source = f"uploaded file ({uploaded.name})"
        else:
            st.error("Please upload a JSON snapshot or enable 'Load demo snapshot'.")
            return

        viewer = Viewer("demo", Role(role), class_id or None)
        settings = ReminderSettings(
            enabled=enabled,
            course_delay_minutes=int(course_delay),
            exam_delay_minutes=int(exam_delay),
            meet_delay_minutes=int(meet_delay),
        )
        result = run_engine(snapshot, viewer, datetime.combine(start_day, start_time), minutes, settings, active)

        st.success(f"Loaded snapshot from {data_source}.")

        st.subheader("A) Visible catalog")
        summary = result["summary"]
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Courses", summary["courses"])
        c2.metric("Exams", summary["exams"])
        c3.metric("Meets", summary["meets"])
        c4.metric("Hidden (other classes)", summary["hidden"])

        st.subheader("B) Notification history")
        if result["rows"]:
            st.table(result["rows"])
            st.write(result["kinds"])
        else:
            st.write("No notifications during this window.")

        st.subheader("C) Session")
        if result["ended_at"]:
            st.warning(f"Session ended at {result['ended_at']:%H:%M}. {result['logout_notice']}")
        else:
            st.write("Session still active at the end of the window.")

        with st.expander("Raw settings"):
            st.code(json.dumps(json_adapter.settings_to_dict(settings), indent=2), language="json")

    except ValueError as exc:
        st.error(f"Input error: {exc}")
    except Exception:
        st.error("Something went wrong while running the demo. Please verify the snapshot format.")


if __name__ == "__main__":
    main()
