"""Name Normalization Utilities.

This module provides functions to normalize payer/customer names for
consistent matching. The normalization process:
1. Converts to lowercase
2. Removes punctuation
3. Removes trailing corporate suffixes (Inc, LLC, Corp, etc.)
4. Collapses whitespace

Examples:
    "ACME CORP"          → "acme"
    "Acme Corporation"   → "acme"
    "Gamma L.L.C."       → "gamma"
    "Epsilon & Partners" → "epsilon"
    "Acme Ltd"           → "acme ltd"
"""

import re
from typing import List


# Corporate suffixes removed from the end of a name during normalization
CORPORATE_SUFFIXES = {
    "inc", "incorporated",
    "llc", "limited",
    "corp", "corporation",
    "co", "company",
    "partners",
}

# Words that are noise when comparing tokens
NOISE_WORDS = {
    "the", "and", "of", "for", "a", "an",
}


def normalize_entity_name(name: str) -> str:
    """Normalize a payer/customer name for matching.

    Args:
        name: Raw name as written on a payment or invoice

    Returns:
        Normalized name string; empty when nothing significant remains

    Examples:
        >>> normalize_entity_name("Acme Corp.")
        'acme'
        >>> normalize_entity_name("Beta Incorporated")
        'beta'
    """
    if not name:
        return ""

    text = name.lower().strip()

    # Abbreviation dots and apostrophes join letters ("l.l.c." -> "llc")
    text = re.sub(r"[.']", "", text)
    # Any other punctuation separates words
    text = re.sub(r"[^\w\s]", " ", text)
    text = text.replace("_", " ")

    tokens = text.split()

    # Strip trailing suffixes ("beta co inc" -> "beta")
    while tokens and tokens[-1] in CORPORATE_SUFFIXES:
        tokens.pop()

    return " ".join(tokens)


def tokenize_name(name: str) -> List[str]:
    """Tokenize a normalized name into significant words.

    Removes noise words and returns unique tokens in order.

    Examples:
        >>> tokenize_name("the gamma group")
        ['gamma', 'group']
    """
    if not name:
        return []

    seen = set()
    result = []
    for token in name.lower().split():
        if token in NOISE_WORDS or token in seen:
            continue
        seen.add(token)
        result.append(token)

    return result


def calculate_token_similarity(tokens1: List[str], tokens2: List[str]) -> float:
    """Calculate similarity between two token lists using Jaccard + ordering.

    Combines:
    - Jaccard similarity (set overlap)
    - Order bonus (if first tokens match)
    - Substring matching (partial token matches)

    Returns:
        Similarity score from 0.0 to 1.0
    """
    if not tokens1 or not tokens2:
        return 0.0

    set1 = set(tokens1)
    set2 = set(tokens2)

    intersection = set1 & set2
    union = set1 | set2

    jaccard = len(intersection) / len(union)

    # Company names usually start with their key word
    first_match_bonus = 0.15 if tokens1[0] == tokens2[0] else 0.0

    # Partial token matching (for abbreviations)
    partial_matches = 0.0
    for t1 in set1 - intersection:
        for t2 in set2 - intersection:
            if len(t1) >= 3 and len(t2) >= 3 and (t1 in t2 or t2 in t1):
                partial_matches += 0.5
                break

    partial_bonus = min(0.2, partial_matches * 0.1)

    return min(1.0, jaccard + first_match_bonus + partial_bonus)
