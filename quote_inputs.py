"""Derive quotation values from a single form submission.

The main public function is `transform`, which takes the raw form answers
(label -> value) and returns a new read-only mapping holding the answers plus
every derived value the quotation workbook needs: normalized FPI/LPO dates,
the support range, contract terms, cost-driver defaults and the comment rows.
`try_transform` wraps it and reports failures as a value instead of raising.
"""
import logging
import math
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from quote_errors import InvalidDate, MissingRequiredField, QuoteInputError, UnknownTrialType
from trial_dates import (
    ago_date,
    first_day_of_month,
    format_japanese_date,
    future_date,
    last_day_of_month,
    month_diff,
    months_from_text,
    parse_date,
    round_year,
)
from trial_items import (
    TrialType,
    common_item_names,
    create_support_range,
    support_range_flags,
    support_range_text,
    trial_type_from_label,
)

__all__ = [
    "InvalidDate",
    "MissingRequiredField",
    "QuoteInputError",
    "TermSet",
    "TransformResult",
    "UnknownTrialType",
    "calculate_terms",
    "contract_period",
    "default_values",
    "edit_comments",
    "final_analysis_count",
    "transform",
    "try_transform",
]

log = logging.getLogger(__name__)

COMMENT_COUNT = 7


@dataclass(frozen=True)
class TermSet:
    fpi_to_lpo: int
    setup_months: int
    closing_months: int
    total_months: int
    total_years: int
    months_of_treatment: Optional[int] = None
    treatment_years: Optional[int] = None


@dataclass(frozen=True)
class TransformResult:
    items: Optional[Mapping[str, Any]] = None
    error: Optional[QuoteInputError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _required(items: Mapping[str, Any], label: str) -> Any:
    value = items.get(label)
    if _is_blank(value):
        raise MissingRequiredField(f"Required field is missing: {label}", field=label)
    return value


def setup_term() -> Dict[TrialType, int]:
    """Months of preparation before FPI, per trial type."""
    return {t: 3 if t is TrialType.OBSERVATIONAL else 6 for t in TrialType}


def closing_term() -> Dict[TrialType, int]:
    """Months of close-out after LPO, per trial type."""
    return {t: 3 if t is TrialType.OBSERVATIONAL else 6 for t in TrialType}


def final_analysis_count(trial_type: TrialType) -> int:
    return 100 if trial_type is TrialType.INVESTIGATOR_INITIATED else 50


def calculate_terms(
    trial_type: TrialType,
    fpi: date,
    lpo: date,
    treatment_term: Any = None,
) -> TermSet:
    """Compute contract terms for the FPI-LPO window of a trial.

    `fpi_to_lpo` counts calendar months inclusively; setup and closing months
    are added around it. A missing treatment term leaves both treatment
    values as None.
    """
    fpi_to_lpo = month_diff(first_day_of_month(fpi), last_day_of_month(lpo))
    setup_months = setup_term()[trial_type]
    closing_months = closing_term()[trial_type]
    total_months = fpi_to_lpo + setup_months + closing_months
    months_of_treatment = months_from_text(treatment_term)
    return TermSet(
        fpi_to_lpo=fpi_to_lpo,
        setup_months=setup_months,
        closing_months=closing_months,
        total_months=total_months,
        total_years=math.ceil(total_months / 12),
        months_of_treatment=months_of_treatment,
        treatment_years=round_year(months_of_treatment),
    )


def default_values(items: Mapping[str, Any]) -> Dict[str, Any]:
    """Cases, facilities and CRF item counts, falling back to standard sizes."""
    names = common_item_names()
    defaults = [("cases", 50), ("facilities", 10), ("crf_items", 3500)]
    values: Dict[str, Any] = {}
    for item_name, default in defaults:
        label = names[item_name]
        value = items.get(label)
        values[label] = default if _is_blank(value) else value
    return values


def _period_text(total_months: Optional[int]) -> str:
    if not total_months:
        return ""
    years, months = divmod(total_months, 12)
    year_text = f"{years}年" if years > 0 else ""
    month_text = f"{months}ヶ月" if months > 0 else ""
    return f"{year_text}{month_text}"


def contract_period(fpi: date, lpo: date, terms: TermSet) -> Tuple[date, date]:
    """First and last day of the contract: setup months before FPI through closing months after LPO."""
    names = common_item_names()
    try:
        start = ago_date(fpi, terms.setup_months)
    except ValueError as exc:
        raise InvalidDate(
            f"Contract start {terms.setup_months} months before {fpi.isoformat()} is out of range",
            field=names["fpi"],
            value=fpi,
        ) from exc
    try:
        end = future_date(lpo, terms.closing_months)
    except ValueError as exc:
        raise InvalidDate(
            f"Contract end {terms.closing_months} months after {lpo.isoformat()} is out of range",
            field=names["lpo"],
            value=lpo,
        ) from exc
    return start, end


def edit_comments(
    fpi: date,
    lpo: date,
    terms: TermSet,
    facilities: Any,
    crf_items: Any,
    cases: Any,
    analysis_count: int,
) -> List[List[str]]:
    """Render the quotation comment block, one comment per row."""
    start, end = contract_period(fpi, lpo, terms)
    comments = [
        f"契約期間は{format_japanese_date(start)}〜{format_japanese_date(end)} "
        f"({_period_text(terms.total_months)}間）を想定しております。",
        f"参加施設数を{facilities}施設と想定しております。",
        f"CRFのべ項目数を一症例あたり{crf_items}項目と想定しております。",
        f"目標症例数を{cases}例と想定しております。",
        f"解析帳票数を{analysis_count}表と想定しております。",
        "諸経費・間接経費は全て各項目の見積に含まれています。",
        "試験開始後のEDC(eCRF)変更・修正の費用を含みません。",
    ]
    return [[comment] for comment in comments]


def transform(items: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return the submission enriched with every derived quotation value.

    `items` is left untouched. Derived keys override input keys of the same
    name. Raises a QuoteInputError subclass if the submission lacks a trial
    type or FPI/LPO, holds an unreadable date, or names an unknown trial type.
    """
    names = common_item_names()

    trial_type = trial_type_from_label(_required(items, names["trial_type"]))
    support_range = create_support_range(trial_type)

    fpi = first_day_of_month(parse_date(_required(items, names["fpi"]), field=names["fpi"]))
    lpo = last_day_of_month(parse_date(_required(items, names["lpo"]), field=names["lpo"]))
    if lpo < fpi:
        raise InvalidDate(
            f"LPO {lpo.isoformat()} precedes FPI {fpi.isoformat()}",
            field=names["lpo"],
            value=items.get(names["lpo"]),
        )

    analysis_count = final_analysis_count(trial_type)
    terms = calculate_terms(trial_type, fpi, lpo, items.get(names["treatment_term"]))
    defaults = default_values(items)
    comments = edit_comments(
        fpi,
        lpo,
        terms,
        facilities=defaults[names["facilities"]],
        crf_items=defaults[names["crf_items"]],
        cases=defaults[names["cases"]],
        analysis_count=analysis_count,
    )
    total_years_text, total_months_text = divmod(terms.total_months, 12)

    output: Dict[str, Any] = dict(items)
    output[names["fpi"]] = fpi
    output[names["lpo"]] = lpo
    output[names["support_range"]] = support_range_text(support_range)
    output["final_analysis_count"] = analysis_count
    output.update(support_range_flags(support_range))
    output.update(defaults)
    output.update(
        fpi_to_lpo=terms.fpi_to_lpo,
        months_of_treatment=terms.months_of_treatment,
        setup_months=terms.setup_months,
        closing_months=terms.closing_months,
        total_months=terms.total_months,
        treatment_years=terms.treatment_years,
        total_years=terms.total_years,
        total_years_text=total_years_text,
        total_months_text=total_months_text,
        comments=comments,
    )
    log.debug(
        "Derived %s quote: %d months (%d-%d-%d)",
        trial_type.value,
        terms.total_months,
        terms.setup_months,
        terms.fpi_to_lpo,
        terms.closing_months,
    )
    return MappingProxyType(output)


def try_transform(items: Mapping[str, Any]) -> TransformResult:
    """Run `transform`, returning the failure as a value instead of raising."""
    try:
        return TransformResult(items=transform(items))
    except QuoteInputError as exc:
        log.warning("Quote input rejected (%s): %s", type(exc).__name__, exc)
        return TransformResult(error=exc)


if __name__ == "__main__":
    # Quick self-check
    sample = {
        "試験種別": "観察研究・レジストリ",
        "FPI (First Patient In)": "2023-01-01",
        "LPO (Last Patient Out)": "2025-12-01",
    }
    for key, value in transform(sample).items():
        print(f"{key}: {value}")
