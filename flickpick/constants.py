import math

SESSION_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
SESSION_CODE_LENGTH = 6
MAX_USERS_PER_SESSION = 2

RUNTIME_BLOCKS = [
    {"label": "Under 90 min", "min": 0, "max": 89},
    {"label": "90-120 min", "min": 90, "max": 120},
    {"label": "120-150 min", "min": 121, "max": 150},
    {"label": "Over 150 min", "min": 151, "max": math.inf},
]

DECADES = ["1950s", "1960s", "1970s", "1980s", "1990s", "2000s", "2010s", "2020s"]

MOODS = {
    "Feel Good": ["Comedy", "Family", "Animation", "Romance"],
    "Edge of Seat": ["Action", "Thriller", "Horror", "Crime"],
    "Mind-Bending": ["Sci-Fi", "Mystery", "Thriller", "Fantasy"],
    "Tearjerker": ["Drama", "Romance", "Biography"],
    "Adventure Time": ["Adventure", "Action", "Fantasy", "Sci-Fi"],
    "Laugh Out Loud": ["Comedy", "Animation"],
    "Date Night": ["Romance", "Comedy", "Drama"],
    "Brain Off": ["Action", "Comedy", "Animation"],
}
