"""
Module de lecture de points et d'arbres pour KDGeo.
Les points sont lus depuis un fichier JSON ou CSV; les arbres avec joblib.
"""

import csv
import json
import os
import time
from typing import Any, Dict, List, Optional, Sequence

import joblib

from kdgeo.core.tree import KDTree


def _parse_csv_value(value: str) -> Any:
    try:
        return float(value)
    except ValueError:
        return value


def read_points(file_path: str, dimensions: Sequence[Any], id_field: Optional[str] = None,
                verbose: bool = True) -> List[Dict[str, Any]]:
    """
    Lit des points depuis un fichier JSON ou CSV.

    JSON: une liste d'objets, ou un objet avec une clé "points".
    CSV: une ligne d'entête; les colonnes des dimensions sont converties en float,
    les cellules vides sont omises (et signalées à la construction).

    Args:
        file_path: Chemin du fichier (.json ou .csv)
        dimensions: Dimensions à convertir en nombres (CSV)
        id_field: Champ identifiant, conservé tel quel
        verbose: Afficher les messages de progression

    Returns:
        List[Dict[str, Any]]: Les enregistrements lus
    """
    start_time = time.time()
    extension = os.path.splitext(file_path)[1].lower()
    if verbose:
        print(f"⏳ Lecture des points depuis {file_path}...")

    if extension == ".json":
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("points")
        if not isinstance(data, list):
            raise ValueError(f"{file_path}: une liste de points (ou une clé 'points') est attendue")
        points = data
    elif extension == ".csv":
        numeric = set(dimensions)
        points = []
        with open(file_path, "r", encoding="utf-8", newline="") as f:
            for row in csv.DictReader(f):
                record = {}
                for key, value in row.items():
                    if key in numeric and key != id_field:
                        if value is None or value.strip() == "":
                            continue
                        record[key] = _parse_csv_value(value.strip())
                    else:
                        record[key] = value
                points.append(record)
    else:
        raise ValueError(f"Format de fichier non supporté: {file_path} (attendu .json ou .csv)")

    if verbose:
        elapsed = time.time() - start_time
        print(f"✓ {len(points):,} points lus [terminé en {elapsed:.2f}s]")
    return points


def load_tree(file_path: str, verbose: bool = True) -> KDTree:
    """
    Charge un arbre sauvegardé par save_tree.

    Args:
        file_path: Chemin du fichier de l'arbre

    Returns:
        KDTree: L'arbre chargé
    """
    start_time = time.time()
    if verbose:
        print(f"⏳ Chargement de l'arbre depuis {file_path}...")

    tree = joblib.load(file_path)
    if not isinstance(tree, KDTree):
        raise ValueError(f"{file_path} ne contient pas un arbre KDGeo")

    if verbose:
        elapsed = time.time() - start_time
        print(f"✓ Arbre chargé: {tree} [terminé en {elapsed:.2f}s]")
    return tree
