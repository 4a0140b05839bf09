"""Streamlit front-end for the clinical trial quote generator.

Collects a quotation request (or loads the latest one from a form-responses
CSV export), derives the quote values with `quote_inputs.try_transform`, shows
the resulting sheets and lets the user download, save and email the quote.
"""
# Standard library imports first
from datetime import date, datetime
import logging
from typing import Any, Dict, Optional

# Third-party imports
import streamlit as st

# Local imports
from logging_config import setup_logging
from quote_config import Settings
from quote_export import (
    latest_response,
    list_saved_quotes,
    load_form_responses,
    quote_csv,
    quote_dataframe,
    quote_filename,
    quote_rows,
    read_saved_quote,
    read_with_retry,
    resolve_recipient,
    respondent_email,
    save_csv_to_disk,
    send_email_with_attachment,
    slugify,
)
from quote_inputs import try_transform
from quote_sheets import build_quote_sheets
from trial_items import common_item_names, fee_item_names, trial_type_item_names

# Must set page config before creating any UI elements
st.set_page_config(
    page_title="Clinical Trial Quote Generator",
    initial_sidebar_state="expanded",
)

log = logging.getLogger("clinical_quote_app")


def request_inputs() -> Dict[str, Any]:
    """Render the quotation request form and return the answers given.

    Optional fields left blank are omitted so the quote falls back to its
    standard sizes.
    """
    names = common_item_names()
    fee = fee_item_names()
    items: Dict[str, Any] = {}

    items[names["trial_type"]] = st.selectbox(names["trial_type"], options=list(trial_type_item_names().values()))
    items[fee["registration_fee"]] = st.radio(
        fee["registration_fee"],
        options=(fee["not_applicable"], fee["applicable"]),
        horizontal=True,
    )
    col1, col2 = st.columns(2)
    with col1:
        items[names["fpi"]] = st.date_input(names["fpi"], value=date.today())
    with col2:
        items[names["lpo"]] = st.date_input(names["lpo"], value=date(date.today().year + 2, 12, 1))

    use_defaults = st.checkbox("Use standard cases / facilities / CRF items", value=True)
    if not use_defaults:
        items[names["cases"]] = int(st.number_input(names["cases"], min_value=1, max_value=100000, value=50, step=1))
        items[names["facilities"]] = int(st.number_input(names["facilities"], min_value=1, max_value=1000, value=10, step=1))
        items[names["crf_items"]] = int(st.number_input(names["crf_items"], min_value=1, max_value=1000000, value=3500, step=100))

    treatment_term = st.text_input(names["treatment_term"], help="e.g. 13, 1年6ヶ月")
    if treatment_term.strip():
        items[names["treatment_term"]] = treatment_term
    reply_to = st.text_input(names["reply_to_email"])
    if reply_to.strip():
        items[names["reply_to_email"]] = reply_to.strip()
    return items


def load_latest_response(settings: Settings) -> Optional[Dict[str, Any]]:
    uploaded = st.sidebar.file_uploader("Form responses (CSV export)", type=["csv"])
    if uploaded is None:
        return None

    def read():
        uploaded.seek(0)
        return load_form_responses(uploaded)

    try:
        frame = read_with_retry(
            read,
            attempts=settings.read_attempts,
            backoff_seconds=settings.read_backoff_seconds,
        )
        return latest_response(frame)
    except (OSError, ValueError) as e:
        st.sidebar.error(f"Error reading form responses: {e}")
        return None


def show_derived_values(items) -> None:
    st.markdown("### Contract terms")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("FPI-LPO", f"{items['fpi_to_lpo']} months")
    c2.metric("Setup / closing", f"{items['setup_months']} / {items['closing_months']} months")
    c3.metric("Total", f"{items['total_months']} months")
    c4.metric("Years", items["total_years"])
    st.markdown(f"**{common_item_names()['support_range']}:** {items[common_item_names()['support_range']]}")
    st.markdown("### Comments")
    for row in items["comments"]:
        st.markdown(f"- {row[0]}")


def main():
    setup_logging()
    settings = Settings()

    st.title("Clinical Trial Quote Generator")
    st.markdown("Enter the quotation request. The quote sheets, CSV export and notification email are derived from it.")
    st.write("")

    source = st.sidebar.radio("Request source", options=("Form", "Responses CSV"), key="request_source")
    respondent: Optional[str] = None
    if source == "Responses CSV":
        items = load_latest_response(settings)
        if items is None:
            st.info("Upload a form-responses CSV export in the sidebar.")
            return
        respondent = respondent_email(items)
        with st.expander("Latest response"):
            st.json({k: str(v) for k, v in items.items()})
    else:
        items = request_inputs()

    result = try_transform(items)
    if not result.ok:
        # No quote, export or email for a rejected request
        st.error(f"Cannot create a quote: {result.error}")
        return

    quote = result.items
    show_derived_values(quote)

    issued_on = date.today()
    sheets = build_quote_sheets(quote, issued_on=issued_on)
    rows = quote_rows(sheets)
    summary = {
        "Title": "研究相談用見積",
        "GeneratedAtUTC": datetime.utcnow().isoformat(),
        "TrialType": quote[common_item_names()["trial_type"]],
        "TotalMonths": quote["total_months"],
    }
    csv_content = quote_csv(rows, summary=summary)
    st.session_state["_last_csv"] = csv_content

    if st.checkbox("Show quote sheets", value=True, key="show_sheets"):
        st.dataframe(quote_dataframe(rows))

    download_name = st.text_input("Download filename", value=quote_filename(issued_on))
    raw = (download_name or "").strip()
    base = raw[:-4] if raw.lower().endswith(".csv") else raw
    safe_download_name = f"{slugify(base)}.csv" if base else quote_filename(issued_on)
    st.download_button("Download quote CSV", data=csv_content.encode("utf-8"), file_name=safe_download_name, mime="text/csv")

    if st.button("Save quote to server"):
        try:
            saved_path = save_csv_to_disk(csv_content, filename=safe_download_name, directory=settings.output_dir)
            st.success(f"Saved CSV to {saved_path}")
        except OSError as e:
            st.error(f"Error saving CSV: {e}")

    with st.sidebar:
        st.markdown("### Saved quotes")
        saved = list_saved_quotes(settings.output_dir)
        if saved:
            selected = st.selectbox("Select a saved CSV", options=saved)
            content = read_saved_quote(selected, settings.output_dir)
            if content is None:
                st.info("Unable to read the selected quote (it may have been removed).")
            else:
                st.download_button("Download selected CSV", data=content, file_name=selected, mime="text/csv")
        else:
            st.info(f"No saved CSVs found in {settings.output_dir}/")

        st.markdown("### Email")
        smtp_server = st.text_input("SMTP server (e.g. smtp.gmail.com)", value=settings.smtp_server, key="smtp_server")
        smtp_port = st.number_input("SMTP port", value=settings.smtp_port, min_value=1, max_value=65535, key="smtp_port")
        smtp_user = st.text_input("SMTP username", value=settings.smtp_user, key="smtp_user")
        smtp_pass = st.text_input("SMTP password", type="password", value=settings.smtp_pass, key="smtp_pass")
        from_email = st.text_input("From email address", value=settings.from_email, key="from_email")
        to_email = st.text_input("To email address", value=resolve_recipient(quote, respondent) or "", key="to_email")
        subject = st.text_input("Email subject", value=settings.email_subject, key="email_subject")
        message = st.text_area("Email body", value=settings.email_body, key="email_body")

        if st.button("Send quote by email"):
            if not smtp_server or not smtp_user or not smtp_pass or not from_email or not to_email:
                st.error("Please fill in all SMTP and email fields before sending.")
                st.stop()
            try:
                send_email_with_attachment(
                    smtp_server=smtp_server,
                    smtp_port=int(smtp_port),
                    username=smtp_user,
                    password=smtp_pass,
                    from_addr=from_email,
                    to_addr=to_email,
                    subject=subject,
                    body=message,
                    attachment_bytes=st.session_state["_last_csv"].encode("utf-8"),
                    attachment_name=safe_download_name,
                )
                st.success(f"Email sent to: {to_email}")
            except OSError as e:
                log.exception("Sending quote email failed")
                st.error(f"Error sending email: {e}")


if __name__ == "__main__":
    main()
