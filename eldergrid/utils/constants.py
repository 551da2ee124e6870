# eldergrid/utils/constants.py
AVAILABLE_APPLIANCES = ["geyser", "heater", "fan", "tv"]

DEFAULT_CUSTOM_THRESHOLDS = {"geyser": 120, "heater": 180, "fan": 300, "tv": 240}
THRESHOLD_SLIDER_MAX = 600

# effective threshold = gov average * this when no custom value exists
GOV_THRESHOLD_MULTIPLIER = 2

# simulator
RUNTIME_INCREMENT_RANGE = (1, 3)
HIGH_USAGE_FACTOR = 1.5
CRITICAL_ALERT_FACTOR = 2

CARBON_BASELINE = 15.2
OFF_DEVICE_BONUS = {"High": 0.8, "Medium": 0.5, "Low": 0.2}
OVER_THRESHOLD_PENALTY = 0.3

GREEN_SCORE_START = 100
GREEN_SCORE_MAX_OVERAGE_PENALTY = 20
GREEN_SCORE_OVERAGE_WEIGHT = 5
GREEN_SCORE_ALERT_PENALTY = 5
GREEN_SCORE_OFF_BONUS = 2

DEFAULT_DEVICES = [
    {"id": 1, "name": "Geyser", "status": True, "runtime_minutes": 35, "base_usage": "High",
     "threshold_minutes": 120, "usual_average_minutes": 90},
    {"id": 2, "name": "Heater", "status": False, "runtime_minutes": 0, "base_usage": "High",
     "threshold_minutes": 180, "usual_average_minutes": 150},
    {"id": 3, "name": "Fan", "status": True, "runtime_minutes": 12, "base_usage": "Low",
     "threshold_minutes": 300, "usual_average_minutes": 240},
    {"id": 4, "name": "TV", "status": False, "runtime_minutes": 0, "base_usage": "Medium",
     "threshold_minutes": 240, "usual_average_minutes": 180},
]

# seeding ranges (minutes) per appliance
SEED_RANGES = [
    ("Geyser", 20, 140),
    ("Heater", 60, 240),
    ("Fan", 200, 500),
    ("TV", 60, 360),
]
SEED_LOG_COUNT = (15, 20)
SEED_DAYS_BACK = 7

DEFAULT_LOG_LIMIT = 20
ALERT_TRACKER_CAPACITY = 256

DEMO_USER_ID = "demo-user"
