import os
import sys
from datetime import date, datetime

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from logging_config import setup_logging
from quote_export import quote_csv, quote_rows, save_csv_to_disk, slugify
from quote_inputs import transform
from quote_sheets import build_quote_sheets
from trial_items import TrialType, common_item_names, fee_item_names, trial_type_item_names

setup_logging()

names = common_item_names()
fee = fee_item_names()
labels = trial_type_item_names()

# One sample request per trial type and fee answer
requests = []
for trial_type in TrialType:
    for fee_answer in (fee["applicable"], fee["not_applicable"]):
        request = {
            names["trial_type"]: labels[trial_type],
            fee["registration_fee"]: fee_answer,
            names["fpi"]: "2023-01-15",
            names["lpo"]: "2025-12-15",
        }
        if trial_type in (TrialType.INVESTIGATOR_INITIATED, TrialType.ADVANCED_MEDICAL):
            request[names["cases"]] = 222
            request[names["treatment_term"]] = "１３"
        if trial_type in (TrialType.INVESTIGATOR_INITIATED, TrialType.ADVANCED_MEDICAL) or fee_answer == fee["applicable"]:
            request[names["facilities"]] = 44
        requests.append((trial_type, fee_answer, request))

issued_on = date.today()
for trial_type, fee_answer, request in requests:
    quote = transform(request)
    sheets = build_quote_sheets(quote, issued_on=issued_on)
    summary = {
        "Title": "Sample run",
        "GeneratedAtUTC": datetime.utcnow().isoformat(),
        "TrialType": labels[trial_type],
        "RegistrationFee": fee_answer,
        "TotalMonths": quote["total_months"],
    }
    csv_content = quote_csv(quote_rows(sheets), summary=summary)
    filename = f"sample_{slugify(trial_type.value)}_{'fee' if fee_answer == fee['applicable'] else 'nofee'}.csv"
    out_path = save_csv_to_disk(csv_content, filename=filename)
    print(f"{labels[trial_type]} / {fee_answer}: {quote['total_months']} months, "
          f"{len(sheets.setup_values)} setup items -> {out_path}")

print("\nComments for the last sample:\n")
print('\n'.join(row[0] for row in quote["comments"]))
