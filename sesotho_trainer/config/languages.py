"""Language pair and word category display configuration."""

LANG_CONFIG = {
    "source": {
        "code": "stho",
        "label": "Sesotho",
    },
    "target": {
        "code": "en",
        "label": "English",
    },
}

# Display label and chip colour per category, keyed by Category.value
CATEGORY_STYLE = {
    "pronoun": {"label": "Pronoun", "color": "#8e44ad"},
    "verb": {"label": "Verb", "color": "#c0392b"},
    "noun": {"label": "Noun", "color": "#2980b9"},
    "adjective": {"label": "Adjective", "color": "#27ae60"},
    "adverb": {"label": "Adverb", "color": "#d35400"},
    "preposition": {"label": "Preposition", "color": "#7f8c8d"},
}
