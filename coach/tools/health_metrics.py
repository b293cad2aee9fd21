"""Health metrics calculator: BMI, BMR, calorie and macro targets."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

ACTIVITY_MULTIPLIERS = {
    "sedentary": 1.2,
    "lightly active": 1.375,
    "moderately active": 1.55,
    "very active": 1.725,
    "extra active": 1.9,
}
DEFAULT_ACTIVITY_MULTIPLIER = 1.55

# goal -> (calorie factor, protein g/kg, fat share of calories, label)
GOAL_PROFILES = {
    "weight loss": (0.8, 2.0, 0.25, " (20% deficit for weight loss)"),
    "muscle gain": (1.15, 2.2, 0.25, " (15% surplus for muscle gain)"),
    "maintenance": (1.0, 1.6, 0.30, ""),
}


def bmi_category(bmi: float) -> str:
    if bmi < 18.5:
        return "Underweight"
    if bmi < 25:
        return "Normal weight"
    if bmi < 30:
        return "Overweight"
    return "Obese"


def mifflin_st_jeor(weight_kg: float, height_cm: float, age: int, gender: str) -> float:
    base = 10 * weight_kg + 6.25 * height_cm - 5 * age
    return base + 5 if gender.strip().lower() == "male" else base - 161


def _goal_key(goal: str) -> str:
    lowered = goal.lower()
    for key in ("weight loss", "muscle gain"):
        if key in lowered:
            return key
    return "maintenance"


def calculate_health_metrics(
    weight_kg: float,
    height_cm: float,
    age: int,
    gender: str,
    activity_level: str = "moderately active",
    goal: str = "maintenance",
) -> str:
    """Calculate BMI, BMR, daily calories and macro targets for a user.

    Args:
        weight_kg: Body weight in kilograms.
        height_cm: Height in centimeters.
        age: Age in years.
        gender: 'male' or 'female'.
        activity_level: sedentary, lightly active, moderately active, very active or extra active.
        goal: weight loss, muscle gain or maintenance.
    """
    logger.info("Tool calculate_health_metrics: goal=%s activity=%s", goal, activity_level)
    if weight_kg <= 0 or height_cm <= 0 or age <= 0:
        return "Error: weight (kg), height (cm), and age must be positive numbers."
    if not gender or not gender.strip():
        return "Error: gender is required for accurate BMR calculations."

    height_m = height_cm / 100
    bmi = weight_kg / (height_m * height_m)
    bmr = mifflin_st_jeor(weight_kg, height_cm, age, gender)

    multiplier = ACTIVITY_MULTIPLIERS.get(
        (activity_level or "").strip().lower(), DEFAULT_ACTIVITY_MULTIPLIER
    )
    maintenance = round(bmr * multiplier)

    factor, protein_per_kg, fat_share, adjustment = GOAL_PROFILES[_goal_key(goal or "")]
    target = round(maintenance * factor)
    protein = round(weight_kg * protein_per_kg)
    fat = round(target * fat_share / 9)
    carbs = round((target - protein * 4 - fat * 9) / 4)

    return "\n".join(
        [
            "Health Metrics for User:",
            f"• BMI: {bmi:.1f} ({bmi_category(bmi)})",
            f"• BMR: {round(bmr)} kcal/day",
            f"• Maintenance Calories: {maintenance} kcal/day",
            f"• Target Calories: {target} kcal/day{adjustment}",
            f"• Macro Targets: Protein {protein}g, Carbs {carbs}g, Fat {fat}g",
        ]
    )
