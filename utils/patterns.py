"""Pre-compiled regex patterns for the budget flow tools.

All patterns are compiled once at module import.

Usage:
    from utils.patterns import YEAR_ENTRY, SLUG

    if YEAR_ENTRY.match(name):
        ...
"""

import re

# Published fiscal-year directory names: exactly four digits ("2023")
YEAR_ENTRY = re.compile(r'^\d{4}$')

# Jurisdiction / department slug segment: "british-columbia", "toronto"
SLUG = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')

# Characters dropped when deriving a slug from a display name
NON_SLUG_CHARS = re.compile(r'[^a-z0-9]+')

# actual_2024 style keys in statement-of-operations line item values
ACTUAL_KEY = re.compile(r'^actual_(\d{4})$')

# Whitespace normalization: multiple spaces/tabs/newlines
WHITESPACE = re.compile(r'\s+')

# Currency symbols for stripping during numeric conversion
CURRENCY_SYMBOLS = re.compile(r'[\$€£¥₹₽]')
