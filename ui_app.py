import io
import json
import logging
import os
import tempfile

import streamlit as st

from itemrecon.cli import load_config
from itemrecon.client import InvalidDocumentError, ParseClient, ParseServiceError, ServiceConfig, service_config
from itemrecon.export_excel import write_workbook
from itemrecon.normalize import format_currency
from itemrecon.pipeline import ComparisonCache, Tolerances
from itemrecon.view import SORT_KEYS, filter_rows, sort_rows


st.set_page_config(page_title="CO/FC Item Reconciliation", layout="wide")

DEFAULTS = {
    "config_path": "./config.yaml",
    "co_payload": None,
    "fc_payload": None,
    "co_name": "",
    "fc_name": "",
    "log_output": "",
    "cache": None,
}

for key, default in DEFAULTS.items():
    st.session_state.setdefault(key, default)
if st.session_state["cache"] is None:
    st.session_state["cache"] = ComparisonCache()

STATE_ICONS = {"ok": "✓", "warn": "≠", "miss": "∅"}


def load_upload(upload, side: str, client_settings: ServiceConfig, profile: str):
    data = upload.getvalue()
    if upload.name.lower().endswith(".json"):
        return json.loads(data.decode("utf-8"))
    with ParseClient(client_settings) as client:
        if side == "CO":
            return client.parse_co(data, upload.name, profile)
        return client.parse_fc(data, upload.name, profile)


st.title("CO/FC Items - Comparison")
st.write("Upload the CO and the FC (PDF or parsed JSON), review the differences and export them.")

with st.sidebar:
    st.header("Settings")
    st.text_input("Config YAML", key="config_path")
    config = load_config(st.session_state["config_path"])
    settings = service_config(config)
    profiles = (config.get("profiles") or {}).get("available") or [settings.co_profile, settings.fc_profile]

    settings.co_url = st.text_input("CO endpoint", value=settings.co_url)
    settings.fc_url = st.text_input("FC endpoint", value=settings.fc_url)
    co_profile = st.selectbox(
        "CO profile", options=profiles,
        index=profiles.index(settings.co_profile) if settings.co_profile in profiles else 0,
    )
    fc_profile = st.selectbox(
        "FC profile", options=profiles,
        index=profiles.index(settings.fc_profile) if settings.fc_profile in profiles else 0,
    )
    log_level = st.selectbox("Log level", options=["INFO", "DEBUG", "WARNING", "ERROR"], index=0)


co_col, fc_col = st.columns(2)
co_upload = co_col.file_uploader("CO document", type=["pdf", "json"], key="co_upload")
fc_upload = fc_col.file_uploader("FC document", type=["pdf", "json"], key="fc_upload")

if st.button("Process documents"):
    handler = logging.StreamHandler(stream=io.StringIO())
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))
    try:
        with st.spinner("Processing..."):
            if co_upload is not None and co_upload.name != st.session_state["co_name"]:
                st.session_state["co_payload"] = load_upload(co_upload, "CO", settings, co_profile)
                st.session_state["co_name"] = co_upload.name
            if fc_upload is not None and fc_upload.name != st.session_state["fc_name"]:
                st.session_state["fc_payload"] = load_upload(fc_upload, "FC", settings, fc_profile)
                st.session_state["fc_name"] = fc_upload.name
    except (ParseServiceError, InvalidDocumentError, json.JSONDecodeError) as exc:
        st.error(f"Error: {exc}")
    finally:
        handler.flush()
        st.session_state["log_output"] = handler.stream.getvalue()
        root_logger.removeHandler(handler)

co_payload = st.session_state["co_payload"]
fc_payload = st.session_state["fc_payload"]

if co_payload is not None or fc_payload is not None:
    comparison = st.session_state["cache"].get(co_payload or {}, fc_payload or {}, Tolerances.from_config(config))
    counters = comparison.counters

    st.subheader("Summary")
    left, right = st.columns(2)
    for column, label, side in ((left, "CO", comparison.summary_a), (right, "FC", comparison.summary_b)):
        column.metric(
            f"Value total {label}",
            format_currency(side.value_total, side.currency) if side.with_value else "-",
            help=f"Items with value: {side.with_value}/{side.total_items}",
        )
        column.write(" · ".join(f"{unit} {qty}" for unit, qty in side.quantity_by_unit) or "-")

    st.subheader("Comparison")
    st.write(
        f"✓ {counters.ok} | ≠ {counters.warn} | ∅ {counters.miss} | Σ {counters.total}"
    )
    toolbar = st.columns([2, 2, 1])
    only_diffs = toolbar[0].checkbox("Show only differences", value=False)
    sort_key = toolbar[1].selectbox("Sort by", options=list(SORT_KEYS), index=0)
    descending = toolbar[2].checkbox("Descending", value=False)

    view = sort_rows(filter_rows(comparison.rows, only_diffs), sort_key, descending)
    table = [
        {
            "Order": item.row.order,
            "NCM CO": item.row.classification_a,
            "NCM FC": item.row.classification_b,
            "Description CO": item.row.description_a,
            "Description FC": item.row.description_b,
            "Qty CO": item.row.quantity_a,
            "Unit CO": item.row.unit_a,
            "Qty FC": item.row.quantity_b,
            "Unit FC": item.row.unit_b,
            "Value CO": item.row.value_a,
            "Value FC": item.row.value_b,
            "Match": item.row.match_mode.value if item.row.match_mode else "",
            "Fields": " ".join(f"{name}:{STATE_ICONS[state.value]}" for name, state in item.states.items()),
            "Severity": item.severity.value,
        }
        for item in view
    ]
    st.dataframe(table, use_container_width=True, height=500)

    if st.button("Export differences (.xlsx)", disabled=not any(r.has_diff for r in comparison.rows)):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "differences.xlsx")
            write_workbook(
                path, view, comparison.merged, counters,
                comparison.summary_a, comparison.summary_b, only_diffs=True,
            )
            with open(path, "rb") as file:
                st.download_button("Download", data=file.read(), file_name="differences.xlsx")
else:
    st.info("No data yet. Upload a CO or FC above.")

st.subheader("Console Output")
st.text_area("Logs", value=st.session_state.get("log_output", ""), height=200)
