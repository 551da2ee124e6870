# eldergrid/utils/data_loader.py
import json
import os

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
GOV_MOCK_PATH = os.path.join(BASE_DIR, "data", "gov_energy_mock.json")


def load_gov_records(path: str = GOV_MOCK_PATH) -> list[dict]:
    if not os.path.exists(path):
        raise FileNotFoundError(
            f"Missing government mock data at {path}. "
            "Expected a JSON list of {appliance, avg_usage_minutes, region, source}"
        )
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("Government mock data must be a JSON list")
    return data
