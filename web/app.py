#!/usr/bin/env python3
from __future__ import annotations

import hashlib
import json

import requests
import streamlit as st

from csv_cleaner import CleaningError, CleaningOptions, CleanResult, clean
from csv_cleaner.display import (
    PREVIEW_ROWS,
    cleaned_filename,
    format_file_size,
    is_csv_filename,
    more_rows_note,
    preview_frame,
)
from csv_cleaner.options import parse_column_type_spec
from csv_cleaner.remote import MAX_REMOTE_FILE_MB, fetch_remote_csv


def ensure_state() -> None:
    st.session_state.setdefault("source", None)
    st.session_state.setdefault("result", None)
    st.session_state.setdefault("error", None)


def set_source(name: str, data: bytes) -> None:
    """Selecting a different file discards whatever the previous file produced."""
    fingerprint = hashlib.sha256(data).hexdigest()
    current = st.session_state.get("source")
    if current and current["fingerprint"] == fingerprint and current["name"] == name:
        return
    st.session_state["source"] = {"name": name, "data": data, "fingerprint": fingerprint}
    st.session_state["result"] = None
    st.session_state["error"] = None


def column_types_from_text(raw: str) -> dict:
    column_types = {}
    for line in raw.splitlines():
        if line.strip():
            column, column_type = parse_column_type_spec(line)
            column_types[column] = column_type
    return column_types


def process_source(data: bytes, options: CleaningOptions) -> tuple[CleanResult | None, str | None]:
    """Run one cleaning; failures come back as a message for the page to show."""
    try:
        return clean(data, options), None
    except (CleaningError, ValueError) as exc:
        return None, str(exc)


def render_source_picker() -> None:
    upload = st.file_uploader("Upload a CSV file", type=["csv"], key="upload_input")
    if upload is not None:
        if not is_csv_filename(upload.name):
            st.error("Please choose a valid CSV file.")
            return
        set_source(upload.name, upload.getvalue())

    url = st.text_input(
        "Or paste a public CSV URL",
        key="url_input",
        placeholder="GitHub, Dropbox, Google Drive/Sheets and OneDrive share links work too.",
    )
    st.caption(f"URL mode makes an outbound request and rejects files above {MAX_REMOTE_FILE_MB} MB.")
    if url and st.button("Fetch URL"):
        try:
            remote = fetch_remote_csv(url)
        except (requests.RequestException, ValueError) as exc:
            st.error(f"Could not fetch {url}: {exc}")
            return
        set_source(remote.name, remote.data)


def render_options() -> CleaningOptions | None:
    st.subheader("Processing options")
    cols = st.columns(4)
    remove_duplicates = cols[0].checkbox("Remove duplicates", value=True)
    handle_nulls = cols[1].checkbox("Handle null values", value=True)
    standardize_text = cols[2].checkbox("Standardize text", value=True)
    validate_formats = cols[3].checkbox("Validate formats", value=True)

    with st.expander("Advanced"):
        null_policy = st.radio("Null values", ["substitute", "drop"], horizontal=True)
        null_sentinel = st.text_input("Sentinel for empty fields", value="", disabled=null_policy == "drop")
        text_case = st.selectbox("Text case", ["unchanged", "lower", "upper", "title"])
        raw_types = st.text_area("Column types (one COLUMN=TYPE per line)", placeholder="Date=date\nAmount=numeric")
        dayfirst = st.checkbox("Ambiguous dates are day-first (DD/MM/YYYY)")

    try:
        return CleaningOptions(
            remove_duplicates=remove_duplicates,
            handle_nulls=handle_nulls,
            standardize_text=standardize_text,
            validate_formats=validate_formats,
            null_policy=null_policy,
            null_sentinel="" if null_policy == "drop" else null_sentinel,
            text_case=None if text_case == "unchanged" else text_case,
            column_types=column_types_from_text(raw_types),
            dayfirst=dayfirst,
        )
    except CleaningError as exc:
        st.error(str(exc))
        return None


def render_result(source: dict, result) -> None:
    report = result.report
    st.subheader("Validation report")
    metrics = st.columns(5)
    metrics[0].metric("Original rows", report.total_rows)
    metrics[1].metric("Duplicates removed", report.duplicates_removed)
    metrics[2].metric("Null values handled", report.nulls_handled)
    metrics[3].metric("Format errors fixed", f"{report.format_errors_fixed}/{report.format_errors_found}")
    metrics[4].metric("Final rows", report.final_rows)
    for pass_name, message in sorted(report.pass_errors.items()):
        st.warning(f"{pass_name}: {message}")

    st.subheader("Preview of the cleaned data")
    st.dataframe(preview_frame(result.table, rows=PREVIEW_ROWS), hide_index=True)
    note = more_rows_note(result.table, rows=PREVIEW_ROWS)
    if note:
        st.caption(note)

    with st.expander(f"Change log ({len(report.changes)} entries)"):
        st.json(report.to_dict()["changes"])

    cols = st.columns(2)
    cols[0].download_button(
        "Download cleaned CSV",
        data=result.data,
        file_name=cleaned_filename(source["name"]),
        mime="text/csv",
    )
    cols[1].download_button(
        "Download report (JSON)",
        data=json.dumps(report.to_dict(), indent=2, ensure_ascii=False),
        file_name=cleaned_filename(source["name"], suffix="_report", extension=".json"),
        mime="application/json",
    )


def main() -> None:
    st.set_page_config(page_title="csv-cleaner", page_icon="🧹", layout="wide")
    ensure_state()

    st.title("csv-cleaner")
    st.caption("Upload a CSV, pick the cleaning passes, and download the cleaned file with a report of every change.")

    render_source_picker()
    source = st.session_state.get("source")
    if not source:
        st.info("Drop a .csv file above to get started.")
        return
    st.markdown(f"**{source['name']}**  ·  {format_file_size(len(source['data']))}")

    options = render_options()
    if st.button("Process data", type="primary", disabled=options is None):
        with st.spinner("Processing..."):
            result, error = process_source(source["data"], options)
            st.session_state["result"] = result
            st.session_state["error"] = error

    if st.session_state.get("error"):
        st.error(f"Could not process the file: {st.session_state['error']}")
    if st.session_state.get("result") is not None:
        render_result(source, st.session_state["result"])


if __name__ == "__main__":
    main()
