"""Lay the derived quotation values out as the rows of the quote workbook.

`calculate_setup_values` decides which cost line items appear on the Setup
sheet and with what quantity; `prepare_trial_sheet_values` fills the Trial
sheet header block. `build_quote_sheets` bundles everything a document writer
needs for one submission.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd

from trial_items import TrialType, common_item_names, is_fee_applicable, trial_type_from_label

log = logging.getLogger(__name__)

SETUP_SHEET = "Setup"
TRIAL_SHEET = "Trial"
INPUT_DATA_SHEET = "Input Data"

MONITORING_VISITS_PER_CASE_YEAR = 4
PROTOCOL_REVIEW_MEETINGS = 4


@dataclass
class QuoteSheets:
    setup_values: Dict[str, Any]
    trial_values: Dict[str, Any]
    input_rows: List[Tuple[str, Any]]
    comments: List[List[str]]
    hidden_values: List[str] = field(default_factory=lambda: ["0"])


def _number(value: Any) -> float:
    if value is None or value == "":
        return 0
    number = pd.to_numeric(value, errors="coerce")
    if number is None or pd.isna(number):
        return 0
    return number


def calculate_setup_values(items: Mapping[str, Any]) -> Dict[str, Any]:
    """Return Setup sheet line items (label -> quantity) for a derived quote.

    Each support service switches on a block of line items. The trial office
    block is also switched on when a case-registration fee applies, whatever
    the support range says.
    """
    names = common_item_names()
    facilities = items.get(names["facilities"])
    cases = items.get(names["cases"])
    values: Dict[str, Any] = {}

    if items.get("protocol_development_support"):
        values["プロトコルレビュー・作成支援（図表案、統計解析計画書案を含む）"] = 1
        values["検討会実施（TV会議等）"] = PROTOCOL_REVIEW_MEETINGS

    if items.get("clinical_trial_office") or is_fee_applicable(items):
        values["事務局運営（試験開始前）"] = items.get("setup_months")
        values["SOP一式、CTR登録案、TMF管理"] = 1
        values["IRB準備・承認確認"] = facilities
        values["薬剤対応"] = facilities
        values["事務局運営（試験開始後から試験終了まで）"] = items.get("fpi_to_lpo")
        values["事務局運営（試験終了時）"] = 1

    if items.get("monitoring"):
        values["モニタリング準備業務（関連資料作成）"] = 1
        values["開始前モニタリング・必須文書確認"] = facilities
        values["症例モニタリング・SAE対応"] = (
            _number(items.get("treatment_years")) * _number(cases) * MONITORING_VISITS_PER_CASE_YEAR
        )

    if items.get("datacenter"):
        values["データベース管理料"] = items.get("fpi_to_lpo")
        values["EDCライセンス・データベースセットアップ"] = 1
        values["業務分析・DM計画書の作成・CTR登録案の作成"] = 1
        values["DB作成・eCRF作成・バリデーション"] = 1
        values["バリデーション報告書"] = 1
        values["初期アカウント設定（施設・ユーザー）、IRB承認確認"] = facilities
        values["入力の手引作成"] = 1
        values["ロジカルチェック、マニュアルチェック、クエリ対応"] = items.get("fpi_to_lpo")
        values["データクリーニング"] = 1
        values["データベース固定作業、クロージング"] = 1

    if items.get("statistical_analysis"):
        values["統計解析計画書・出力計画書・解析データセット定義書・解析仕様書作成"] = 1
        values["最終解析プログラム作成、解析実施（シングル）"] = items.get("final_analysis_count")
        values["最終解析報告書作成（出力結果＋表紙）"] = 1

    if items.get("csr"):
        values["研究結果報告書の作成"] = 1

    if values:
        values["プロジェクト管理"] = items.get("total_months")

    log.debug("Setup sheet: %d line items", len(values))
    return values


def trial_year_count(trial_type: TrialType) -> int:
    """Number of years the Trial sheet spreads the quote over."""
    years = {
        TrialType.OBSERVATIONAL: 1,
        TrialType.SPECIFIED_CLINICAL: 3,
        TrialType.INTERVENTION: 2,
    }
    return years.get(trial_type, 5)


def prepare_trial_sheet_values(
    items: Mapping[str, Any],
    target_year: str = SETUP_SHEET,
    issued_on: Optional[date] = None,
) -> Dict[str, Any]:
    names = common_item_names()
    return {
        "発行年月日": issued_on or date.today(),
        names["trial_type"]: items.get(names["trial_type"]),
        names["crf_items"]: items.get(names["crf_items"]),
        names["facilities"]: items.get(names["facilities"]),
        names["cases"]: items.get(names["cases"]),
        target_year: target_year,
        "係数": 1,
    }


def input_data_rows(items: Mapping[str, Any]) -> List[Tuple[str, Any]]:
    """The submission's business fields as (label, value) rows."""
    return [(label, items.get(label)) for label in common_item_names().values()]


def build_quote_sheets(items: Mapping[str, Any], issued_on: Optional[date] = None) -> QuoteSheets:
    """Assemble all sheet contents for a transformed submission."""
    names = common_item_names()
    trial_type = trial_type_from_label(items.get(names["trial_type"]))
    trial_values = prepare_trial_sheet_values(items, SETUP_SHEET, issued_on)
    trial_values["年数"] = trial_year_count(trial_type)
    return QuoteSheets(
        setup_values=calculate_setup_values(items),
        trial_values=trial_values,
        input_rows=input_data_rows(items),
        comments=list(items.get("comments") or []),
    )
