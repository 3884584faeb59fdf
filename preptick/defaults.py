"""Built-in presets seeded on first launch."""

from __future__ import annotations

from .timer.models import Category, Preset

# (name, seconds, category, favorite)
DEFAULT_PRESETS: tuple[tuple[str, int, Category, bool], ...] = (
    ("Soft Boiled Eggs", 360, Category.BREAKFAST, True),
    ("Hard Boiled Eggs", 600, Category.BREAKFAST, False),
    ("Overnight Oats", 300, Category.BREAKFAST, False),
    ("French Press Coffee", 240, Category.BEVERAGE, True),
    ("Drip Coffee Warm", 300, Category.BEVERAGE, False),
    ("Iced Tea Brew", 900, Category.BEVERAGE, False),
    ("Pasta Al Dente", 480, Category.LUNCH, True),
    ("Rice (Jasmine)", 900, Category.LUNCH, False),
    ("Quinoa", 960, Category.LUNCH, False),
    ("Roast Chicken Rest", 900, Category.DINNER, False),
    ("Steak Rest", 420, Category.DINNER, True),
    ("Salmon Bake", 720, Category.DINNER, False),
    ("Brownies", 1500, Category.DESSERT, False),
    ("Cookies", 720, Category.DESSERT, True),
    ("Cheesecake Chill", 14400, Category.DESSERT, False),
    ("Marinade", 3600, Category.PREP, False),
    ("Dough Proof", 7200, Category.PREP, False),
    ("Preheat Oven", 600, Category.PREP, True),
)


def seed_presets() -> list[Preset]:
    """Fresh preset objects (new ids every call)."""
    return [
        Preset(name=name, duration_seconds=seconds, category=category, is_favorite=favorite)
        for name, seconds, category, favorite in DEFAULT_PRESETS
    ]
