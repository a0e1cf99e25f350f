"""
Single-letter codes used on school health examination cards.

Cards may store either the code ("c") or its label ("Severely Wasted/Underweight").
The fact normalizer decodes codes through this table; labels pass through.
"""

from typing import Final

NOT_EXAMINED_CODE: Final = "X"

EXAM_CODE_TABLE: Final[dict[str, dict[str, str]]] = {
    "nutritionalStatus": {
        "a": "Normal Weight",
        "b": "Wasted/Underweight",
        "c": "Severely Wasted/Underweight",
        "d": "Overweight",
        "e": "Obese",
        "f": "Normal Height",
        "g": "Stunted",
        "h": "Severely Stunted",
        "i": "Tall",
        "X": "Not Examined",
    },
    "visionAuditory": {
        "a": "Passed",
        "b": "Failed",
        "X": "Not Examined",
    },
    "skinScalp": {
        "a": "Normal",
        "b": "Presence of Lice",
        "c": "Redness of Skin",
        "d": "White Spots",
        "e": "Flaky Skin",
        "f": "Impetigo/boil",
        "g": "Hematoma",
        "h": "Bruises/Injuries",
        "i": "Itchiness",
        "j": "Skin Lesions",
        "k": "Acne/Pimple",
        "X": "Not Examined",
    },
    "eyeEarNose": {
        "a": "Normal",
        "b": "Stye",
        "c": "Eye Redness",
        "d": "Ocular Misalignment",
        "e": "Pale Conjunctiva",
        "f": "Ear discharge",
        "g": "Impacted cerumen",
        "h": "Mucus discharge",
        "i": "Nose Bleeding (Epistaxis)",
        "j": "Eye discharge",
        "k": "Matted Eyelashes",
        "X": "Not Examined",
    },
    "mouthThroatNeck": {
        "a": "Normal",
        "b": "Enlarged tonsils",
        "c": "Presence of lesions",
        "d": "Inflamed pharynx",
        "e": "Enlarged lymphnodes",
        "X": "Not Examined",
    },
    "lungsHeart": {
        "a": "Normal",
        "c": "Rales",
        "d": "Wheeze",
        "e": "Murmur",
        "h": "Irregular heart rate",
        "X": "Not Examined",
    },
    "abdomen": {
        "a": "Normal",
        "b": "Distended",
        "c": "Abdominal Pain",
        "d": "Tenderness",
        "e": "Dysmenorrhea",
        "X": "Not Examined",
    },
    "deformities": {
        "a": "Acquired",
        "b": "Congenital (Specify)",
        "X": "Not Examined",
    },
}

GRADE_LEVELS: Final = (
    "Kinder",
    *(f"Grade {n}" for n in range(1, 13)),
    "SPED",
)


def decode_exam_code(group: str, value: str) -> str:
    """Decode a single-letter exam code in either case; any other value is returned unchanged.

    Raises KeyError for an unknown code group.
    """
    codes = EXAM_CODE_TABLE[group]
    if len(value) == 1:
        for candidate in (value, value.lower(), value.upper()):
            if candidate in codes:
                return codes[candidate]
    return value
