"""Export, delivery and form-response helpers around the quote core.

These functions are shared by the Streamlit front-end and the sample
generator. They write the quote sheets to CSV, email the result and read form
responses exported as CSV.
"""
import logging
import os
import re
import smtplib
import time
from datetime import date, datetime
from email.message import EmailMessage
from io import StringIO
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar

import pandas as pd

from quote_sheets import INPUT_DATA_SHEET, SETUP_SHEET, TRIAL_SHEET, QuoteSheets
from trial_dates import to_halfwidth_digits
from trial_items import common_item_names

log = logging.getLogger(__name__)

T = TypeVar("T")

QUOTE_COLUMNS = ["sheet", "item", "value"]
RESPONDENT_EMAIL_COLUMNS = ("メールアドレス", "Email Address", "Email")


def quote_rows(sheets: QuoteSheets) -> List[dict]:
    """Flatten quote sheets into sheet/item/value rows for CSV and display.

    Setup line items whose quantity renders as a hidden value (zero) are left
    out, as the workbook filters would hide them.
    """
    rows: List[dict] = []
    for label, value in sheets.input_rows:
        rows.append({"sheet": INPUT_DATA_SHEET, "item": label, "value": value})
    for label, value in sheets.trial_values.items():
        rows.append({"sheet": TRIAL_SHEET, "item": label, "value": value})
    for row in sheets.comments:
        rows.append({"sheet": TRIAL_SHEET, "item": "Comment", "value": row[0]})
    for label, value in sheets.setup_values.items():
        if _format_number(value) in sheets.hidden_values:
            continue
        rows.append({"sheet": SETUP_SHEET, "item": label, "value": value})
    return rows


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return "" if value is None else str(value)


def quote_csv(rows: List[dict], summary: Optional[dict] = None) -> str:
    """Render quote rows as sheet,item,value CSV.

    Summary entries come first as `# key: value` lines and a blank line.
    """
    if not rows and not summary:
        return ""

    output = StringIO()
    for key, value in (summary or {}).items():
        output.write(f"# {key}: {value}\n")
    if summary:
        output.write("\n")
    if rows:
        frame = pd.DataFrame(rows, columns=QUOTE_COLUMNS)
        frame["value"] = frame["value"].map(_format_number)
        frame.to_csv(output, index=False, lineterminator="\n")
    return output.getvalue()


def quote_dataframe(rows: List[dict]) -> "pd.DataFrame":
    """Quote rows for `st.dataframe`, with every value rendered as text.

    The value column mixes dates, counts and labels, which Arrow cannot hold in
    one column. Missing values become NA.
    """
    frame = pd.DataFrame(rows, columns=QUOTE_COLUMNS)
    frame["value"] = frame["value"].map(lambda v: _format_number(v) or pd.NA).astype("string")
    return frame


def slugify(value: str) -> str:
    """Filename-safe slug: keep word characters (including Japanese) and underscores."""
    value = value.strip().lower()
    value = re.sub(r"[^\w\s-]", "", value)
    value = re.sub(r"[\s-]+", "_", value)
    return value


def quote_filename(issued_on: Optional[date] = None) -> str:
    issued_on = issued_on or date.today()
    return f"{slugify('研究相談用見積 ' + issued_on.strftime('%Y%m%d'))}.csv"


def save_csv_to_disk(csv_content: str, filename: str | None = None, directory: str = "outputs") -> str:
    """Save CSV content to disk under `directory` and return the file path."""
    os.makedirs(directory, exist_ok=True)
    if not filename:
        timestamp = datetime.utcnow().strftime("%Y%m%dT%H%M%SZ")
        filename = f"quote_{timestamp}.csv"
    path = os.path.join(directory, filename)
    with open(path, "w", encoding="utf-8", newline="") as fh:
        fh.write(csv_content)
    log.info("Saved quote CSV to %s", path)
    return path


def list_saved_quotes(directory: str = "outputs") -> List[str]:
    """Names of the quote CSVs saved in `directory`, newest first."""
    if not os.path.isdir(directory):
        return []
    entries = [entry for entry in os.scandir(directory) if entry.is_file() and entry.name.lower().endswith(".csv")]
    entries.sort(key=lambda entry: entry.stat().st_mtime, reverse=True)
    return [entry.name for entry in entries]


def read_saved_quote(name: str, directory: str = "outputs") -> Optional[bytes]:
    """Bytes of a saved quote, or None if it can no longer be read."""
    try:
        with open(os.path.join(directory, name), "rb") as fh:
            return fh.read()
    except OSError as exc:
        log.warning("Cannot read saved quote %s: %s", name, exc)
        return None


def resolve_recipient(items: Mapping[str, Any], respondent_email: Optional[str] = None) -> Optional[str]:
    """Reply-to address from the form if given, else the respondent's own address."""
    reply_to = items.get(common_item_names()["reply_to_email"])
    if isinstance(reply_to, str) and reply_to.strip():
        return reply_to.strip()
    return respondent_email


def send_email_with_attachment(
    smtp_server: str,
    smtp_port: int,
    username: str,
    password: str,
    from_addr: str,
    to_addr: str,
    subject: str,
    body: str,
    attachment_bytes: bytes,
    attachment_name: str,
) -> None:
    """Send an email with a single CSV attachment using SMTP (supports STARTTLS or SSL)."""
    msg = EmailMessage()
    msg["From"] = from_addr
    msg["To"] = to_addr
    msg["Subject"] = subject
    msg.set_content(body)
    msg.add_attachment(attachment_bytes, maintype="text", subtype="csv", filename=attachment_name)

    if smtp_port == 465:
        with smtplib.SMTP_SSL(smtp_server, smtp_port) as server:
            server.login(username, password)
            server.send_message(msg)
    else:
        with smtplib.SMTP(smtp_server, smtp_port) as server:
            server.ehlo()
            server.starttls()
            server.login(username, password)
            server.send_message(msg)
    log.info("Sent %s to %s", attachment_name, to_addr)


def read_with_retry(
    read: Callable[[], T],
    attempts: int = 2,
    backoff_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call `read` until it succeeds, at most `attempts` times.

    Waits `backoff_seconds` between attempts and re-raises the last error.
    Only I/O failures are retried.
    """
    attempt = 1
    while True:
        try:
            return read()
        except OSError as exc:
            log.warning("Read attempt %d/%d failed: %s", attempt, attempts, exc)
            if attempt >= attempts:
                raise
        sleep(backoff_seconds)
        attempt += 1


def load_form_responses(source) -> "pd.DataFrame":
    """Read a form-responses CSV export (path or file object), keeping every answer as text."""
    return pd.read_csv(source, dtype=str, keep_default_na=False)


def _coerce_answer(value: str) -> Any:
    text = to_halfwidth_digits(value.strip())
    if text.isascii() and text.isdigit():
        return int(text)
    return text


def latest_response(frame: "pd.DataFrame") -> Dict[str, Any]:
    """Return the newest response as label -> answer, leaving blank answers out.

    Digit-only answers become integers, except FPI/LPO which stay text so a
    yyyymmdd date is read as a date.
    """
    if frame.empty:
        raise ValueError("No form responses found")
    names = common_item_names()
    date_columns = {names["fpi"], names["lpo"]}
    row = frame.iloc[-1]
    response: Dict[str, Any] = {}
    for column, value in row.items():
        if not isinstance(value, str) or not value.strip():
            continue
        label = str(column).strip()
        response[label] = value.strip() if label in date_columns else _coerce_answer(value)
    return response


def respondent_email(response: Mapping[str, Any]) -> Optional[str]:
    for column in RESPONDENT_EMAIL_COLUMNS:
        value = response.get(column)
        if isinstance(value, str) and value:
            return value
    return None
