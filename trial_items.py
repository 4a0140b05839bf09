"""Trial types, form item labels and the support range offered per trial type.

The label tables below are the only place localized strings are defined;
everything else looks labels up through these functions. Tables are rebuilt
on every call so callers never share mutable state.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Tuple, Union

from quote_errors import UnknownTrialType


class TrialType(Enum):
    INVESTIGATOR_INITIATED = "investigatorInitiatedTrial"
    SPECIFIED_CLINICAL = "specifiedClinicalTrial"
    INTERVENTION = "interventionStudies"
    OBSERVATIONAL = "observationalStudiesAndRegistries"
    ADVANCED_MEDICAL = "advancedMedical"


def trial_type_item_names() -> Dict[TrialType, str]:
    return {
        TrialType.INVESTIGATOR_INITIATED: "医師主導治験",
        TrialType.SPECIFIED_CLINICAL: "特定臨床研究",
        TrialType.INTERVENTION: "介入研究（特定臨床研究以外）",
        TrialType.OBSERVATIONAL: "観察研究・レジストリ",
        TrialType.ADVANCED_MEDICAL: "先進",
    }


def common_item_names() -> Dict[str, str]:
    """Form question labels for the non trial-type business fields."""
    return {
        "facilities": "施設数",
        "cases": "目標症例数",
        "crf_items": "CRF項目数",
        "trial_type": "試験種別",
        "support_range": "支援範囲",
        "fpi": "FPI (First Patient In)",
        "lpo": "LPO (Last Patient Out)",
        "treatment_term": "治療期間",
        "reply_to_email": "返信先メールアドレス",
    }


def fee_item_names() -> Dict[str, str]:
    """Case-registration fee question and the answer that makes it apply."""
    return {
        "registration_fee": "症例登録費/研究費",
        "applicable": "あり",
        "not_applicable": "なし",
    }


def is_fee_applicable(items: Mapping[str, Any]) -> bool:
    names = fee_item_names()
    return items.get(names["registration_fee"]) == names["applicable"]


def trial_type_from_label(value: Union[str, TrialType, None]) -> TrialType:
    """Translate a form answer into a TrialType."""
    if isinstance(value, TrialType):
        return value
    label = value.strip() if isinstance(value, str) else value
    for trial_type, name in trial_type_item_names().items():
        if label == name or label == trial_type.value:
            return trial_type
    raise UnknownTrialType(
        f"Unknown trial type: {value!r}",
        field=common_item_names()["trial_type"],
        value=value,
    )


@dataclass(frozen=True)
class SupportItem:
    key: str
    label: str
    targets: FrozenSet[TrialType]
    applicable: bool


def create_support_range(trial_type: TrialType) -> List[SupportItem]:
    """Evaluate the six support services for `trial_type`, in display order."""
    every_type = frozenset(trial_type_item_names())
    physician_led = frozenset({TrialType.INVESTIGATOR_INITIATED, TrialType.ADVANCED_MEDICAL})
    definitions = [
        ("protocol_development_support", "プロトコル作成支援", every_type),
        ("clinical_trial_office", "調整事務局", physician_led),
        ("datacenter", "データセンター", every_type),
        ("monitoring", "実地モニタリング", physician_led),
        ("statistical_analysis", "統計解析", every_type),
        ("csr", "CSR作成", physician_led | {TrialType.SPECIFIED_CLINICAL}),
    ]
    return [
        SupportItem(key=key, label=label, targets=targets, applicable=trial_type in targets)
        for key, label, targets in definitions
    ]


def support_range_text(support_range: List[SupportItem]) -> str:
    return ", ".join(item.label for item in support_range if item.applicable)


def support_range_flags(support_range: List[SupportItem]) -> List[Tuple[str, bool]]:
    return [(item.key, item.applicable) for item in support_range]
