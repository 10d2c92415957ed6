"""Static lookup tables for bridge vocabulary and legend tiers."""

import json
from pathlib import Path
from types import MappingProxyType

UNKNOWN = "未知"

## ---------------------------- Helper functions ---------------------------- ##
def load_name_data():
    '''
    Loads the static name tables from a .json file.
    Used to translate rank tiers, online/activity states and legend names,
    and to look up the tier letter of a translated legend name.
    '''
    dataset_path = Path(__file__).resolve().parent / "datasets" / "names.json"
    with dataset_path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    return data


def translate(name: str) -> str:
    '''
    Translates one vendor term. Unknown terms pass through unchanged.
    '''
    if not name:
        return name
    return NAMES.get(name, name)


def get_legend_rank(legend_name: str) -> str:
    '''
    Returns the tier letter (S > A > B > C > D) of a translated legend name,
    or "未知" when the legend is not in the table.
    '''
    return LEGEND_TIERS.get(legend_name, UNKNOWN)


# Load the tables once; both are read-only for the process lifetime.
_data = load_name_data()
NAMES = MappingProxyType(dict(_data.get("names", {})))
LEGEND_TIERS = MappingProxyType(dict(_data.get("legend_tiers", {})))
