import os
import sys

import pytest

# Ensure project root is on sys.path so tests can import local modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from quote_errors import UnknownTrialType
from trial_items import (
    TrialType,
    common_item_names,
    create_support_range,
    is_fee_applicable,
    support_range_flags,
    support_range_text,
    trial_type_from_label,
    trial_type_item_names,
)

ALL_SUPPORT = ["プロトコル作成支援", "調整事務局", "データセンター", "実地モニタリング", "統計解析", "CSR作成"]

# Services offered per trial type, as quoted to sponsors
EXPECTED_SUPPORT = {
    "医師主導治験": ALL_SUPPORT,
    "特定臨床研究": ["プロトコル作成支援", "データセンター", "統計解析", "CSR作成"],
    "介入研究（特定臨床研究以外）": ["プロトコル作成支援", "データセンター", "統計解析"],
    "観察研究・レジストリ": ["プロトコル作成支援", "データセンター", "統計解析"],
    "先進": ALL_SUPPORT,
}


def test_label_tables():
    assert len(trial_type_item_names()) == 5
    assert set(trial_type_item_names()) == set(TrialType)
    assert len(common_item_names()) == 9
    assert common_item_names()["fpi"] == "FPI (First Patient In)"


def test_label_tables_are_fresh_per_call():
    names = common_item_names()
    names["fpi"] = "changed"
    assert common_item_names()["fpi"] == "FPI (First Patient In)"


@pytest.mark.parametrize("label", list(EXPECTED_SUPPORT))
def test_support_range_per_trial_type(label):
    support_range = create_support_range(trial_type_from_label(label))
    assert [item.label for item in support_range] == ALL_SUPPORT
    applicable = [item.label for item in support_range if item.applicable]
    assert applicable == EXPECTED_SUPPORT[label]
    assert support_range_text(support_range) == ", ".join(EXPECTED_SUPPORT[label])


def test_support_range_flags_keep_declaration_order():
    flags = support_range_flags(create_support_range(TrialType.SPECIFIED_CLINICAL))
    assert flags == [
        ("protocol_development_support", True),
        ("clinical_trial_office", False),
        ("datacenter", True),
        ("monitoring", False),
        ("statistical_analysis", True),
        ("csr", True),
    ]


def test_support_range_text_for_observational():
    text = support_range_text(create_support_range(TrialType.OBSERVATIONAL))
    assert text == "プロトコル作成支援, データセンター, 統計解析"


def test_trial_type_from_label():
    assert trial_type_from_label("先進") is TrialType.ADVANCED_MEDICAL
    assert trial_type_from_label(" 観察研究・レジストリ ") is TrialType.OBSERVATIONAL
    assert trial_type_from_label("investigatorInitiatedTrial") is TrialType.INVESTIGATOR_INITIATED
    assert trial_type_from_label(TrialType.INTERVENTION) is TrialType.INTERVENTION


def test_unknown_trial_type():
    with pytest.raises(UnknownTrialType) as excinfo:
        trial_type_from_label("第I相試験")
    assert excinfo.value.field == "試験種別"
    assert excinfo.value.value == "第I相試験"


def test_fee_flag():
    assert is_fee_applicable({"症例登録費/研究費": "あり"})
    assert not is_fee_applicable({"症例登録費/研究費": "なし"})
    assert not is_fee_applicable({})
