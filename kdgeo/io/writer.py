"""
Module d'écriture pour KDGeo.
Sauvegarde des arbres (joblib) et des couples de plus proches voisins (JSON ou CSV).
"""

import csv
import json
import os
import time
from typing import Any, List, Sequence

import joblib

from kdgeo.core.tree import KDTree
from kdgeo.search.searcher import NeighborPair


def save_tree(tree: KDTree, file_path: str, compress: int = 3, verbose: bool = True) -> str:
    """
    Sauvegarde un arbre KDGeo.

    Args:
        tree: L'arbre à sauvegarder
        file_path: Chemin du fichier de sortie
        compress: Niveau de compression joblib (0 à 9)
        verbose: Afficher les messages de progression

    Returns:
        str: Chemin du fichier écrit
    """
    start_time = time.time()
    if verbose:
        print(f"⏳ Sauvegarde de l'arbre vers {file_path}...")

    os.makedirs(os.path.dirname(os.path.abspath(file_path)), exist_ok=True)
    joblib.dump(tree, file_path, compress=compress)

    if verbose:
        elapsed = time.time() - start_time
        print(f"✓ Arbre sauvegardé dans {file_path} [terminé en {elapsed:.2f}s]")
    return file_path


def _pair_row(pair: NeighborPair, dimensions: Sequence[Any]) -> dict:
    row = {"id": pair.id}
    for dim, value in zip(dimensions, pair.coordinates):
        row[str(dim)] = value
    if pair.neighbor is None:
        row["neighbor_id"] = None
        row["distance"] = None
        for dim in dimensions:
            row[f"neighbor_{dim}"] = None
    else:
        row["neighbor_id"] = pair.neighbor.id
        row["distance"] = pair.neighbor.distance
        for dim, value in zip(dimensions, pair.neighbor.coordinates):
            row[f"neighbor_{dim}"] = value
    return row


def write_neighbors(pairs: List[NeighborPair], file_path: str, dimensions: Sequence[Any],
                    verbose: bool = True) -> None:
    """
    Écrit les couples (point, plus proche voisin) dans un fichier JSON ou CSV.

    Args:
        pairs: Résultat de Searcher.nearest_neighbors
        file_path: Chemin du fichier de sortie (.json ou .csv)
        dimensions: Dimensions de l'arbre, pour nommer les colonnes
        verbose: Afficher les messages de progression
    """
    extension = os.path.splitext(file_path)[1].lower()
    if extension not in (".json", ".csv"):
        raise ValueError(f"Format de fichier non supporté: {file_path} (attendu .json ou .csv)")

    rows = [_pair_row(pair, dimensions) for pair in pairs]
    os.makedirs(os.path.dirname(os.path.abspath(file_path)), exist_ok=True)

    if extension == ".json":
        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(rows, f, indent=2, ensure_ascii=False, default=str)
    else:
        fieldnames = ["id"] + [str(d) for d in dimensions] + ["neighbor_id", "distance"]
        fieldnames += [f"neighbor_{d}" for d in dimensions]
        with open(file_path, "w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for row in rows:
                writer.writerow({key: ("" if value is None else value) for key, value in row.items()})

    if verbose:
        print(f"✓ {len(rows):,} couples écrits dans {file_path}")
