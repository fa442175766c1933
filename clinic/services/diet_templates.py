# clinic/services/diet_templates.py
"""
Meal templates keyed by constitution (dosha) and season.

Each template has morning/lunch/evening meal lists plus guidelines and
restrictions; diet plans copy whatever the doctor leaves blank from here.
"""
from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

CONSTITUTIONS = ("VATA", "PITTA", "KAPHA", "TRIDOSHA")
SEASONS = ("SPRING", "SUMMER", "MONSOON", "AUTUMN", "WINTER")

DIET_TEMPLATES: Dict[str, Dict[str, Dict[str, List[str]]]] = {
    "VATA": {
        "SPRING": {
            "morning": [
                "Warm water with ginger",
                "Light breakfast with ghee",
                "Cooked oatmeal or porridge",
                "Soaked almonds (5-6)",
                "Herbal tea (ginger or cinnamon)"
            ],
            "lunch": [
                "Cooked grains (rice, quinoa)",
                "Warm cooked vegetables",
                "Dal (lentil soup)",
                "Buttermilk",
                "Warm soups"
            ],
            "evening": [
                "Light dinner",
                "Warm milk with turmeric",
                "Cooked vegetables",
                "Avoid raw foods",
                "Chamomile tea"
            ],
            "guidelines": [
                "Eat warm, cooked foods",
                "Avoid cold drinks and ice",
                "Regular meal times",
                "Use warming spices (ginger, cinnamon)",
                "Stay hydrated with warm water"
            ],
            "restrictions": [
                "Avoid raw vegetables",
                "Limit cold foods",
                "Reduce caffeine",
                "Avoid processed foods"
            ]
        },
        "SUMMER": {
            "morning": [
                "Room temperature water",
                "Fresh fruits (sweet)",
                "Oatmeal with milk",
                "Dates and raisins",
                "Rose tea"
            ],
            "lunch": [
                "Rice with ghee",
                "Cooling vegetables (cucumber, zucchini)",
                "Mung dal",
                "Coconut water",
                "Sweet lassi"
            ],
            "evening": [
                "Light khichdi",
                "Warm milk with cardamom",
                "Steamed vegetables",
                "Sweet fruits",
                "Fennel tea"
            ],
            "guidelines": [
                "Eat cooling, nourishing foods",
                "Stay well hydrated",
                "Favor sweet, bitter tastes",
                "Avoid spicy foods",
                "Eat at regular times"
            ],
            "restrictions": [
                "Avoid excessive heat and spice",
                "Limit sour foods",
                "Avoid skipping meals",
                "Reduce fried foods"
            ]
        },
        "MONSOON": {
            "morning": [
                "Warm water with honey",
                "Light breakfast",
                "Poha or upma",
                "Ginger tea",
                "Roasted nuts"
            ],
            "lunch": [
                "Rice with ghee",
                "Cooked vegetables",
                "Moong dal",
                "Warm buttermilk",
                "Digestive spices"
            ],
            "evening": [
                "Khichdi",
                "Warm herbal tea",
                "Cooked vegetables",
                "Light soup",
                "Turmeric milk"
            ],
            "guidelines": [
                "Eat freshly cooked warm foods",
                "Use digestive spices",
                "Avoid heavy foods",
                "Keep meals simple",
                "Drink boiled water"
            ],
            "restrictions": [
                "Avoid raw salads",
                "Limit dairy",
                "Avoid street food",
                "Reduce cold beverages"
            ]
        },
        "AUTUMN": {
            "morning": [
                "Warm water",
                "Cooked grains",
                "Sweet fruits",
                "Warm milk",
                "Cinnamon tea"
            ],
            "lunch": [
                "Rice or wheat",
                "Root vegetables",
                "Dal with ghee",
                "Warm buttermilk",
                "Cooked greens"
            ],
            "evening": [
                "Light dinner",
                "Warm milk with dates",
                "Cooked vegetables",
                "Herbal tea",
                "Soups"
            ],
            "guidelines": [
                "Favor warm, moist foods",
                "Use healthy fats",
                "Eat sweet, sour, salty",
                "Stay hydrated",
                "Regular routine"
            ],
            "restrictions": [
                "Avoid dry, cold foods",
                "Limit raw foods",
                "Reduce bitter foods",
                "Avoid irregular meals"
            ]
        },
        "WINTER": {
            "morning": [
                "Hot water with ginger",
                "Warm porridge",
                "Nuts and dates",
                "Hot milk with turmeric",
                "Masala chai"
            ],
            "lunch": [
                "Whole grains",
                "Root vegetables",
                "Moong dal",
                "Ghee generously",
                "Warming soups"
            ],
            "evening": [
                "Nourishing dinner",
                "Hot milk with nutmeg",
                "Cooked vegetables",
                "Warming spices",
                "Herbal tea"
            ],
            "guidelines": [
                "Eat warm, oily foods",
                "Use warming spices generously",
                "Increase healthy fats",
                "Avoid cold and raw",
                "Stay warm and nourished"
            ],
            "restrictions": [
                "Avoid cold foods completely",
                "Limit raw vegetables",
                "Reduce bitter tastes",
                "Avoid light meals"
            ]
        }
    },

    "PITTA": {
        "SPRING": {
            "morning": [
                "Cool water",
                "Fresh fruits (sweet)",
                "Oatmeal with milk",
                "Coconut water",
                "Mint tea"
            ],
            "lunch": [
                "Cooling grains (rice, barley)",
                "Fresh salads",
                "Cucumber, mint",
                "Sweet lassi",
                "Light dal"
            ],
            "evening": [
                "Light dinner",
                "Cool milk with cardamom",
                "Steamed vegetables",
                "Sweet fruits",
                "Fennel tea"
            ],
            "guidelines": [
                "Favor cool, sweet foods",
                "Avoid hot spices",
                "Eat fresh vegetables",
                "Stay hydrated",
                "Avoid overheating"
            ],
            "restrictions": [
                "Avoid spicy foods",
                "Limit sour foods",
                "Reduce fried items",
                "Avoid excessive heat"
            ]
        },
        "SUMMER": {
            "morning": [
                "Cool water",
                "Fresh sweet fruits",
                "Coconut water",
                "Rice flakes",
                "Rose tea (cool)"
            ],
            "lunch": [
                "Rice with ghee",
                "Cooling vegetables",
                "Fresh cucumber",
                "Sweet buttermilk",
                "Mint chutney"
            ],
            "evening": [
                "Light khichdi",
                "Cool milk",
                "Sweet fruits",
                "Fennel water",
                "Coconut water"
            ],
            "guidelines": [
                "Eat cooling foods",
                "Stay very hydrated",
                "Favor sweet, bitter",
                "Avoid heating foods",
                "Rest in cool places"
            ],
            "restrictions": [
                "Avoid hot spices completely",
                "No sour fruits",
                "Limit salt",
                "Avoid hot beverages"
            ]
        },
        "MONSOON": {
            "morning": [
                "Warm water",
                "Light breakfast",
                "Fresh fruits",
                "Herbal tea",
                "Dry fruits"
            ],
            "lunch": [
                "Light grains",
                "Cooked vegetables",
                "Moong dal",
                "Buttermilk",
                "Mild spices"
            ],
            "evening": [
                "Simple dinner",
                "Warm milk",
                "Steamed vegetables",
                "Light soup",
                "Ginger tea (mild)"
            ],
            "guidelines": [
                "Keep food simple",
                "Avoid heavy foods",
                "Use mild spices",
                "Eat fresh food",
                "Drink boiled water"
            ],
            "restrictions": [
                "Avoid street food",
                "Limit raw foods",
                "Reduce fried items",
                "Avoid leftovers"
            ]
        },
        "AUTUMN": {
            "morning": [
                "Cool to lukewarm water",
                "Sweet fruits",
                "Oatmeal",
                "Coconut water",
                "Coriander tea"
            ],
            "lunch": [
                "Rice or wheat",
                "Green vegetables",
                "Dal with cooling spices",
                "Sweet lassi",
                "Cucumber salad"
            ],
            "evening": [
                "Light dinner",
                "Cool milk",
                "Steamed vegetables",
                "Sweet desserts",
                "Fennel tea"
            ],
            "guidelines": [
                "Favor cooling foods",
                "Eat sweet, bitter",
                "Stay hydrated",
                "Avoid heating foods",
                "Maintain calm routine"
            ],
            "restrictions": [
                "Limit hot spices",
                "Avoid sour foods",
                "Reduce salt",
                "Avoid fried foods"
            ]
        },
        "WINTER": {
            "morning": [
                "Warm water",
                "Sweet fruits",
                "Warm porridge",
                "Dates and figs",
                "Mild herbal tea"
            ],
            "lunch": [
                "Whole grains",
                "Root vegetables",
                "Mung dal",
                "Warm milk",
                "Mild spices"
            ],
            "evening": [
                "Light dinner",
                "Warm milk with saffron",
                "Cooked vegetables",
                "Sweet foods",
                "Licorice tea"
            ],
            "guidelines": [
                "Eat warm, nourishing foods",
                "Use moderate spices",
                "Favor sweet foods",
                "Stay warm",
                "Regular meals"
            ],
            "restrictions": [
                "Avoid very hot spices",
                "Limit sour foods",
                "Reduce salt",
                "Avoid overeating"
            ]
        }
    },

    "KAPHA": {
        "SPRING": {
            "morning": [
                "Warm water with honey",
                "Light breakfast",
                "Ginger tea",
                "Dry fruits (limited)",
                "Spiced tea"
            ],
            "lunch": [
                "Light grains",
                "Steamed vegetables",
                "Spices liberally",
                "Warm soups",
                "Bitter greens"
            ],
            "evening": [
                "Very light dinner",
                "Herbal tea",
                "Steamed vegetables",
                "Avoid dairy",
                "Ginger tea"
            ],
            "guidelines": [
                "Eat light, warm foods",
                "Use heating spices",
                "Avoid heavy foods",
                "Skip breakfast if not hungry",
                "Exercise regularly"
            ],
            "restrictions": [
                "Avoid dairy",
                "Limit sweet foods",
                "No cold drinks",
                "Avoid fried foods"
            ]
        },
        "SUMMER": {
            "morning": [
                "Warm water",
                "Light fruits",
                "Herbal tea",
                "Minimal breakfast",
                "Ginger water"
            ],
            "lunch": [
                "Light grains",
                "Vegetables with spices",
                "Lentils",
                "Warm water",
                "Bitter vegetables"
            ],
            "evening": [
                "Light soup",
                "Herbal tea",
                "Steamed vegetables",
                "Minimal dinner",
                "Warm water"
            ],
            "guidelines": [
                "Keep meals light",
                "Use digestive spices",
                "Avoid heavy foods",
                "Stay active",
                "Eat less quantity"
            ],
            "restrictions": [
                "Avoid cold foods",
                "Limit sweets",
                "No dairy",
                "Avoid oily foods"
            ]
        },
        "MONSOON": {
            "morning": [
                "Hot water with honey",
                "Very light breakfast",
                "Ginger tea",
                "Digestive spices",
                "Warm herbal tea"
            ],
            "lunch": [
                "Light grains",
                "Spiced vegetables",
                "Light dal",
                "Warm water",
                "Bitter vegetables"
            ],
            "evening": [
                "Light soup",
                "Herbal tea",
                "Minimal food",
                "Warm spices",
                "Early dinner"
            ],
            "guidelines": [
                "Eat very light",
                "Use warming spices",
                "Avoid heavy foods",
                "Keep active",
                "Drink warm water"
            ],
            "restrictions": [
                "Avoid dairy completely",
                "No cold foods",
                "Limit sweet",
                "Avoid leftovers"
            ]
        },
        "AUTUMN": {
            "morning": [
                "Warm water with honey",
                "Light breakfast",
                "Spiced tea",
                "Dry fruits (few)",
                "Ginger tea"
            ],
            "lunch": [
                "Light grains",
                "Spiced vegetables",
                "Light dal",
                "Bitter greens",
                "Warm soups"
            ],
            "evening": [
                "Very light dinner",
                "Herbal tea",
                "Steamed vegetables",
                "Minimal food",
                "Warm water"
            ],
            "guidelines": [
                "Eat light, dry foods",
                "Use heating spices",
                "Exercise daily",
                "Avoid sleeping after meals",
                "Stay active"
            ],
            "restrictions": [
                "Avoid sweet foods",
                "Limit dairy",
                "No fried foods",
                "Avoid heavy meals"
            ]
        },
        "WINTER": {
            "morning": [
                "Hot water with honey",
                "Light breakfast",
                "Spiced tea strongly",
                "Minimal food",
                "Ginger tea"
            ],
            "lunch": [
                "Light grains",
                "Warming spices",
                "Light proteins",
                "Bitter vegetables",
                "Warm soups"
            ],
            "evening": [
                "Very light dinner",
                "Herbal tea",
                "Steamed vegetables",
                "Early dinner",
                "Warm water"
            ],
            "guidelines": [
                "Eat warm, light foods",
                "Use heating spices liberally",
                "Stay very active",
                "Avoid heavy foods",
                "Exercise regularly"
            ],
            "restrictions": [
                "Avoid dairy",
                "Limit sweets",
                "No cold foods",
                "Avoid oily foods"
            ]
        }
    },

    "TRIDOSHA": {
        "SPRING": {
            "morning": [
                "Warm water",
                "Balanced breakfast",
                "Fresh fruits (moderate)",
                "Herbal tea",
                "Light grains"
            ],
            "lunch": [
                "Balanced grains",
                "Mixed vegetables",
                "Light dal",
                "Buttermilk (moderate)",
                "Balanced spices"
            ],
            "evening": [
                "Moderate dinner",
                "Warm milk (optional)",
                "Cooked vegetables",
                "Herbal tea",
                "Light soup"
            ],
            "guidelines": [
                "Eat balanced, moderate meals",
                "Use variety of foods",
                "Moderate spices",
                "Regular meal times",
                "Stay active"
            ],
            "restrictions": [
                "Avoid extremes",
                "Moderation in everything",
                "Avoid overeating",
                "Balance hot and cold"
            ]
        },
        "SUMMER": {
            "morning": [
                "Cool to warm water",
                "Fresh fruits",
                "Light grains",
                "Coconut water",
                "Mild herbal tea"
            ],
            "lunch": [
                "Rice with vegetables",
                "Fresh salads",
                "Light dal",
                "Buttermilk",
                "Cooling foods"
            ],
            "evening": [
                "Light dinner",
                "Warm or cool milk",
                "Steamed vegetables",
                "Fresh fruits",
                "Herbal tea"
            ],
            "guidelines": [
                "Favor cooling foods",
                "Stay well hydrated",
                "Eat fresh vegetables",
                "Moderate all tastes",
                "Balance activity and rest"
            ],
            "restrictions": [
                "Avoid excessive heat",
                "Limit very spicy",
                "Moderate all foods",
                "Avoid overexertion"
            ]
        },
        "MONSOON": {
            "morning": [
                "Warm water",
                "Light breakfast",
                "Fresh food",
                "Herbal tea",
                "Digestive spices"
            ],
            "lunch": [
                "Fresh cooked grains",
                "Seasonal vegetables",
                "Light dal",
                "Warm water",
                "Mild spices"
            ],
            "evening": [
                "Light dinner",
                "Warm milk (optional)",
                "Cooked vegetables",
                "Herbal tea",
                "Simple food"
            ],
            "guidelines": [
                "Eat freshly cooked food",
                "Use digestive spices",
                "Drink boiled water",
                "Keep food simple",
                "Maintain hygiene"
            ],
            "restrictions": [
                "Avoid street food",
                "Limit raw foods",
                "Avoid leftovers",
                "Reduce heavy foods"
            ]
        },
        "AUTUMN": {
            "morning": [
                "Warm water",
                "Balanced breakfast",
                "Sweet fruits",
                "Herbal tea",
                "Light grains"
            ],
            "lunch": [
                "Whole grains",
                "Variety of vegetables",
                "Dal with ghee",
                "Buttermilk",
                "Balanced meal"
            ],
            "evening": [
                "Moderate dinner",
                "Warm milk",
                "Cooked vegetables",
                "Herbal tea",
                "Light dessert"
            ],
            "guidelines": [
                "Eat nourishing foods",
                "Balance all tastes",
                "Use moderate spices",
                "Regular routine",
                "Stay active"
            ],
            "restrictions": [
                "Avoid extremes",
                "Moderate everything",
                "Balance hot-cold",
                "Avoid overeating"
            ]
        },
        "WINTER": {
            "morning": [
                "Warm water",
                "Nourishing breakfast",
                "Warm porridge",
                "Herbal tea",
                "Nuts and dates"
            ],
            "lunch": [
                "Whole grains",
                "Root vegetables",
                "Dal with ghee",
                "Warm milk",
                "Warming spices"
            ],
            "evening": [
                "Nourishing dinner",
                "Warm milk",
                "Cooked vegetables",
                "Herbal tea",
                "Warm soup"
            ],
            "guidelines": [
                "Eat warm, nourishing foods",
                "Use warming spices",
                "Include healthy fats",
                "Stay warm",
                "Regular exercise"
            ],
            "restrictions": [
                "Avoid very cold foods",
                "Limit raw foods",
                "Moderate spices",
                "Balance quantity"
            ]
        }
    }
}


def current_season(month: Optional[int] = None) -> str:
    """Feb-May spring, Jun-Jul summer, Aug-Sep monsoon, Oct-Nov autumn."""
    if month is None:
        month = date.today().month
    if 2 <= month <= 5:
        return "SPRING"
    if 6 <= month <= 7:
        return "SUMMER"
    if 8 <= month <= 9:
        return "MONSOON"
    if 10 <= month <= 11:
        return "AUTUMN"
    return "WINTER"


def get_template(constitution: Optional[str],
                 season: Optional[str]) -> Dict[str, List[str]]:
    """Template for the pair, falling back to TRIDOSHA / SPRING."""
    by_season = DIET_TEMPLATES.get((constitution or "").upper(), {})
    tpl = by_season.get((season or "").upper())
    return tpl or DIET_TEMPLATES["TRIDOSHA"]["SPRING"]


def fill_plan_fields(*, constitution: str, season: Optional[str],
                     fields: Dict[str, object]) -> Dict[str, object]:
    """
    Resolve the season and fill blank meals, guidelines and restrictions
    from the matching template. Meals stay lists; the two text fields are
    newline-joined.
    """
    season = (season or current_season()).upper()
    tpl = get_template(constitution, season)
    out = dict(fields)
    out["season"] = season
    for key, src in (("morning_meal", "morning"), ("lunch_meal", "lunch"),
                     ("evening_meal", "evening")):
        if not out.get(key):
            out[key] = list(tpl[src])
    for key in ("guidelines", "restrictions"):
        if not out.get(key):
            out[key] = "\n".join(tpl[key])
    return out
