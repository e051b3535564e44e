"""Static constants and defaults for Gym Tracker CLI."""

from __future__ import annotations

GITHUB_API_BASE = "https://api.github.com"

WORKOUTS_PATH = "workouts.json"
ROUTINES_PATH = "routines.json"
PHASES_PATH = "data.json"

DEBOUNCE_SECONDS = 5.0
SYNCED_DISPLAY_SECONDS = 2.0
FAILED_DISPLAY_SECONDS = 3.0

BASE_UNIT = "kg"
KG_PER_LB = 0.45359237
PR_EPSILON = 0.1
DAY_STREAK_GAP = 3

DEFAULT_INCREMENT = 2.5
DEFAULT_BAR_WEIGHT = 20.0

EQUIPMENT_CLASSES = ("barbell", "dumbbell", "machine", "cable", "bodyweight")
BARBELL_CLASSES = {"barbell"}
WEIGHT_UNITS = ("kg", "lb")

SET_KINDS = ("warmup", "work")

DEFAULT_ROUTINES = {
    "push": {
        "name": "Push",
        "exercises": [
            {"id": 1, "name": "Incline Chest Press", "warmupSets": 2, "workSets": 3, "reps": "3-15"},
            {"id": 2, "name": "Butterfly", "warmupSets": 1, "workSets": 2, "reps": "5-8"},
            {"id": 3, "name": "Lateral Raise Machine", "warmupSets": 1, "workSets": 2, "reps": "5-8"},
            {"id": 4, "name": "Triceps Cable Pushdowns", "warmupSets": 1, "workSets": 2, "reps": "5-8", "equipment": "cable"},
            {"id": 5, "name": "Seated Leg Extensions", "warmupSets": 1, "workSets": 3, "reps": "5-10"},
            {"id": 6, "name": "Standing Calf Raises", "warmupSets": 1, "workSets": 3, "reps": "5-15"},
            {"id": 7, "name": "Crunch Cable", "warmupSets": 0, "workSets": 3, "reps": "8", "equipment": "cable"},
        ],
    },
    "pull": {
        "name": "Pull",
        "exercises": [
            {"id": 1, "name": "Lat Pulldown", "warmupSets": 2, "workSets": 2, "reps": "5-15", "equipment": "cable"},
            {
                "id": 2,
                "name": "RDL",
                "warmupSets": 2,
                "workSets": 2,
                "reps": "5-10",
                "equipment": "barbell",
                "startWeight": 60,
                "barWeight": 20,
            },
            {"id": 3, "name": "Upper Back Row (gray)", "warmupSets": 1, "workSets": 2, "reps": "5-8"},
            {"id": 4, "name": "Low Machine Row", "warmupSets": 0, "workSets": 2, "reps": "4-5"},
            {"id": 5, "name": "Reverse Butterfly", "warmupSets": 1, "workSets": 1, "reps": "5-8"},
            {"id": 6, "name": "Preacher Curl", "warmupSets": 1, "workSets": 2, "reps": "5-10"},
            {"id": 7, "name": "Seated Leg Curl", "warmupSets": 1, "workSets": 3, "reps": "4-15"},
            {"id": 8, "name": "Hip Adduction", "warmupSets": 1, "workSets": 3, "reps": "5-15"},
        ],
    },
}

STATUS_LABELS = {
    "idle": "",
    "checking": "Checking...",
    "syncing": "Syncing...",
    "synced": "Synced!",
    "no_changes": "No changes",
    "failed": "Sync failed",
    "pending": "Pending sync",
}
