# eldergrid/reports/insights.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import pandas as pd

from eldergrid.detection.anomaly import Alert
from eldergrid.utils.llm_agent import LLMError, ask_llm, has_llm_key

logger = logging.getLogger(__name__)

DEMO_INSIGHT = (
    "You reduced energy usage versus regional averages and a few long-running sessions "
    "were flagged. Keep fans efficient and limit heater/geyser durations."
)


def _system_prompt() -> str:
    return (
        "You write a two-sentence weekly energy note for an elderly person.\n"
        "Rules:\n"
        "- Plain, warm language; no jargon, no numbers beyond minutes.\n"
        "- Mention the appliance that ran longest and one concrete tip.\n"
        "- Never repeat raw JSON.\n"
    )


def build_context(
    report: pd.DataFrame,
    alerts: List[Alert],
    carbon_saved: float,
    green_score: int,
) -> Dict[str, Any]:
    rows = [] if report.empty else report.fillna("n/a").to_dict(orient="records")
    return {
        "usage_vs_average": rows,
        "alerts": [a.message for a in alerts[:10]],
        "carbon_saved_kg": carbon_saved,
        "green_score": green_score,
    }


def summarize_insight(context: Dict[str, Any], api_key: Optional[str] = None) -> str:
    """LLM summary when a key is configured, otherwise (or on failure) the demo sentence."""
    if not (api_key or has_llm_key()):
        return DEMO_INSIGHT

    messages = [
        {"role": "system", "content": _system_prompt()},
        {"role": "user", "content": "CONTEXT_JSON:\n" + json.dumps(context, indent=2, default=str)},
    ]
    try:
        return ask_llm(messages, api_key=api_key)
    except LLMError as e:
        logger.warning("AI insight unavailable, using demo text: %s", e)
        return DEMO_INSIGHT
