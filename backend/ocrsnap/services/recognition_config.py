"""
OCRSnap Backend — Recognition Pipeline Configurator
====================================================

What:  Turns the user-facing `mode` and `language` options into Tesseract
       parameters before recognition, and cleans the recognized text after.
Who:   Called by OCRService for every request.
How:   Three immutable lookup tables merged in order (base → mode → language)
       and a fixed chain of text transforms.

Parameter layering:
    ┌────────────┐   ┌────────────┐   ┌────────────────┐
    │ Base layer │──▶│ Mode layer │──▶│ Language layer │──▶ EngineParameterSet
    └────────────┘   └────────────┘   └────────────────┘
    Later layers overwrite earlier ones key by key, so a language whitelist
    always replaces a mode whitelist.

Unknown modes and languages add nothing. Nothing in this module raises on
option values.
"""

import re
import shlex
from types import MappingProxyType
from typing import Dict, Mapping, Optional

EngineParameterSet = Dict[str, str]

MODES = ("fast", "advanced", "handwriting")

_PUNCTUATION = ".,;:!?-()/'\"% "
_DIGITS = "0123456789"
_LATIN = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
_LATVIAN_EXTRA = "ĀČĒĢĪĶĻŅŠŪŽāčēģīķļņšūž"
_CYRILLIC = "АБВГДЕЁЖЗИЙКЛМНОПРСТУФХЦЧШЩЪЫЬЭЮЯабвгдеёжзийклмнопрстуфхцчшщъыьэюя"

# Single uniform block of printed text, LSTM backend, no side outputs.
BASE_PARAMETERS: Mapping[str, str] = MappingProxyType({
    "tessedit_pageseg_mode": "6",
    "tessedit_ocr_engine_mode": "1",
    "preserve_interword_spaces": "1",
    "tessedit_create_hocr": "0",
    "tessedit_create_tsv": "0",
    "tessedit_create_pdf": "0",
})

MODE_PARAMETERS: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "fast": MappingProxyType({
        "tessedit_pageseg_mode": "6",
    }),
    "advanced": MappingProxyType({
        "tessedit_pageseg_mode": "3",
        "textord_min_linesize": "2.5",
    }),
    "handwriting": MappingProxyType({
        "textord_min_linesize": "3.5",
        "tessedit_char_whitelist": _LATIN + _DIGITS + _PUNCTUATION,
    }),
})

LANGUAGE_PARAMETERS: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "lav": MappingProxyType({
        "tessedit_char_whitelist": _LATIN + _LATVIAN_EXTRA + _DIGITS + _PUNCTUATION,
    }),
    "rus": MappingProxyType({
        "tessedit_char_whitelist": _CYRILLIC + _DIGITS + _PUNCTUATION,
    }),
})

# Applied to every language. These are blunt: "rn" and "cl" also occur in
# correctly recognized words ("modern", "include") and get rewritten too.
CONFUSION_SUBSTITUTIONS = (
    (re.compile(r"\bl\b"), "I"),
    (re.compile(r"rn"), "m"),
    (re.compile(r"cl"), "d"),
)

DIACRITIC_TABLES: Mapping[str, Mapping[int, str]] = MappingProxyType({
    "lav": MappingProxyType(str.maketrans({
        "ā": "a", "č": "c", "ē": "e", "ģ": "g", "ī": "i", "ķ": "k",
        "ļ": "l", "ņ": "n", "š": "s", "ū": "u", "ž": "z",
        "Ā": "A", "Č": "C", "Ē": "E", "Ģ": "G", "Ī": "I", "Ķ": "K",
        "Ļ": "L", "Ņ": "N", "Š": "S", "Ū": "U", "Ž": "Z",
    })),
})

_EXCESS_NEWLINES = re.compile(r"\n{3,}")

# pytesseract picks the output renderer per call (txt, tsv), so the
# tessedit_create_* switches stay in the parameter set but are not forwarded.
_RENDERER_PREFIX = "tessedit_create_"

# Parameters Tesseract takes as command-line flags rather than `-c` variables.
_FLAG_PARAMETERS = {
    "tessedit_pageseg_mode": "--psm",
    "tessedit_ocr_engine_mode": "--oem",
}


def resolve_mode(mode: Optional[str], default: str = "fast") -> str:
    """Blank or missing mode → default. Unknown values pass through."""
    if mode is None or not mode.strip():
        return default
    return mode.strip()


def resolve_language(language: Optional[str], default: str = "eng") -> str:
    """Blank or missing language → default. Unknown codes pass through."""
    if language is None or not language.strip():
        return default
    return language.strip()


def build_parameters(mode: str, language: str) -> EngineParameterSet:
    """
    Merge base, mode and language layers into one flat parameter set.

    Returns a fresh dict on every call; callers may mutate it.
    """
    parameters: EngineParameterSet = dict(BASE_PARAMETERS)
    parameters.update(MODE_PARAMETERS.get(mode, {}))
    parameters.update(LANGUAGE_PARAMETERS.get(language, {}))
    return parameters


def to_tesseract_config(parameters: Mapping[str, str]) -> str:
    """
    Render a parameter set as a pytesseract `config` string.

    Page segmentation and engine mode become `--psm` / `--oem`; everything
    else becomes `-c name=value`, except renderer switches. Values are
    shell-quoted because pytesseract splits the string with shlex.
    """
    flags = []
    variables = []
    for name in sorted(parameters):
        value = parameters[name]
        if name.startswith(_RENDERER_PREFIX):
            continue
        if name in _FLAG_PARAMETERS:
            flags.append(f"{_FLAG_PARAMETERS[name]} {shlex.quote(value)}")
        else:
            variables.append(f"-c {shlex.quote(f'{name}={value}')}")
    return " ".join(flags + variables)


def post_process(raw_text: str, language: str) -> str:
    """
    Clean recognized text.

    Order:
        1. Squeeze runs of 3+ newlines to a single blank line.
        2. Confusion substitutions (all languages).
        3. Diacritic stripping when the language has a table.
        4. Trim.
    """
    text = _EXCESS_NEWLINES.sub("\n\n", raw_text)
    for pattern, replacement in CONFUSION_SUBSTITUTIONS:
        text = pattern.sub(replacement, text)
    table = DIACRITIC_TABLES.get(language)
    if table is not None:
        text = text.translate(table)
    return text.strip()
