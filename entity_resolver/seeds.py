"""Seed dictionaries for the entity registry.

A seed maps each canonical name to the variants known to denote it:

    {"Acme Corp": ["Acme Corporation", "ACME CORP"], ...}

Seeds are either the built-in ``DEFAULT_SEED`` or a JSON file with the same
shape, selected with ``RECON_ENTITY_SEED_PATH``.
"""

import json
from pathlib import Path
from typing import Dict, List, Union


# Known customer name variations observed in payment remittances
DEFAULT_SEED: Dict[str, List[str]] = {
    "Acme Corp": [
        "Acme Corporation", "Acme Corp.", "ACME CORP", "Acme Co", "Acme Co.",
        "Acme Inc", "Acme Corp West", "Acme Holdings",
    ],
    "Beta Inc": [
        "Beta Incorporated", "Beta Inc.", "Beta International",
        "Beta International Inc", "Beta Subsidiaries",
    ],
    "Gamma LLC": [
        "Gamma Limited", "Gamma L.L.C.", "Gamma Group", "Gamma Group Holdings",
        "The Gamma Group",
    ],
    "Delta Co": [
        "Delta Company", "Delta Corporation", "Delta Corp", "Delta Logistics",
        "Delta Logistics Services",
    ],
    "Epsilon Partners": [
        "Epsilon & Partners",
    ],
}


def load_seed(path: Union[str, Path]) -> Dict[str, List[str]]:
    """Load a seed dictionary from a JSON file.

    Args:
        path: Path to a JSON object of canonical name -> list of variants

    Returns:
        Seed dictionary

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a mapping of strings to string lists
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Entity seed not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Entity seed must be a JSON object: {path}")

    seed: Dict[str, List[str]] = {}
    for canonical, variants in data.items():
        if not isinstance(variants, list) or not all(isinstance(v, str) for v in variants):
            raise ValueError(f"Variants for '{canonical}' must be a list of strings")
        seed[canonical] = list(variants)

    return seed
