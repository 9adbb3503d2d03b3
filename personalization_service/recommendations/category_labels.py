"""
Display names and emoji for category ids.

Plain lookup data: exact id first, then the first table key contained in the
id, then a title-cased fallback (names) or a star (emoji).
"""

from typing import Dict

DEFAULT_EMOJI = "⭐"

CATEGORY_NAMES: Dict[str, str] = {
    "music": "Music",
    "music-concerts": "Music & Concerts",
    "concert": "Concerts",
    "comedy": "Comedy",
    "comedy-improv": "Comedy & Improv",
    "theatre": "Theatre",
    "theatre-dance": "Theatre & Dance",
    "sports": "Sports",
    "sports-fitness": "Sports & Fitness",
    "food": "Food & Drink",
    "food-drink": "Food Pop-ups",
    "art": "Arts",
    "arts-exhibits": "Arts & Exhibits",
    "tech": "Tech Events",
    "tech-startups": "Tech & Startups",
    "nightlife": "Nightlife",
    "nightlife-dj": "Nightlife & DJ Sets",
    "family": "Family Events",
    "family-kids": "Family & Kids",
    "film": "Film",
    "film-screenings": "Film & Screenings",
    "markets": "Markets",
    "markets-popups": "Markets & Pop-ups",
    "outdoors": "Outdoors",
    "outdoors-nature": "Outdoors & Nature",
    "wellness": "Wellness",
    "wellness-mindfulness": "Wellness & Mindfulness",
    "workshops": "Workshops",
    "workshops-classes": "Workshops & Classes",
    "date-night": "Date Night",
    "late-night": "Late Night",
    "neighborhood": "Neighborhood",
    "halloween": "Halloween",
}

CATEGORY_EMOJI: Dict[str, str] = {
    "music": "🎵",
    "concert": "🎸",
    "comedy": "😂",
    "theatre": "🎭",
    "sports": "🏃",
    "food": "🍽️",
    "art": "🎨",
    "tech": "💻",
    "nightlife": "🌃",
    "family": "👨‍👩‍👧‍👦",
    "film": "🎬",
    "markets": "🛍️",
    "outdoors": "🌲",
    "wellness": "🧘",
    "workshops": "📚",
    "date-night": "💕",
    "late-night": "🌙",
    "neighborhood": "📍",
    "halloween": "🎃",
    "jazz": "🎷",
}

# Friendlier titles used on "recommended for you" rails
RECOMMENDED_NAMES: Dict[str, str] = {
    "music": "Music You Love",
    "concert": "More Concerts",
    "comedy": "Comedy Shows",
    "theatre": "Theatre & Dance",
    "sports": "Sports Events",
    "food": "Food & Drink",
    "art": "Arts & Culture",
    "tech": "Tech Events",
    "nightlife": "Nightlife",
    "family": "Family-Friendly",
}


def title_case(category_id: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in category_id.split("-") if word)


def display_name(category_id: str, names: Dict[str, str] = CATEGORY_NAMES) -> str:
    if category_id in names:
        return names[category_id]
    return title_case(category_id)


def recommended_name(category_id: str) -> str:
    if category_id in RECOMMENDED_NAMES:
        return RECOMMENDED_NAMES[category_id]
    for key, name in RECOMMENDED_NAMES.items():
        if key in category_id:
            return name
    return title_case(category_id)


def emoji_for(category_id: str) -> str:
    if category_id in CATEGORY_EMOJI:
        return CATEGORY_EMOJI[category_id]
    for key, emoji in CATEGORY_EMOJI.items():
        if key in category_id:
            return emoji
    return DEFAULT_EMOJI
