"""
Module pour la recherche en ligne de commande.
Fournit les commandes `neighbors` (tous les points) et `query` (une position).
"""

import os
import argparse
from typing import Any, Dict, List, Optional

from kdgeo.builder.builder import build_tree_from_file
from kdgeo.core.tree import KDTree
from kdgeo.io.reader import load_tree
from kdgeo.io.writer import write_neighbors
from kdgeo.search.searcher import Searcher
from kdgeo.search.trace import SearchTrace
from kdgeo.utils.config import ConfigManager


def parse_assignments(items: Optional[List[str]], option: str) -> Dict[str, float]:
    """
    Convertit des arguments DIM=VALEUR en dictionnaire.

    Args:
        items: Liste de chaînes "DIM=VALEUR"
        option: Nom de l'option, pour les messages d'erreur

    Returns:
        Dict[str, float]: Valeur numérique par dimension
    """
    values = {}
    for item in items or []:
        name, sep, raw = item.partition("=")
        if not sep or not name:
            raise ValueError(f"{option}: format attendu DIM=VALEUR, reçu '{item}'")
        try:
            values[name] = float(raw)
        except ValueError:
            raise ValueError(f"{option}: valeur non numérique pour '{name}': '{raw}'") from None
    return values


def resolve_search_params(args: argparse.Namespace, config_manager: ConfigManager, tree: KDTree):
    """
    Distance maximale et poids: arguments explicites, sinon configuration.

    Les poids de la configuration sont restreints aux dimensions de l'arbre;
    ceux passés par --weight sont transmis tels quels et validés par le Searcher.
    """
    search_config = config_manager.get_section("search")
    max_distance = args.max_distance if args.max_distance is not None else search_config["max_distance"]
    weights = parse_assignments(args.weight, "--weight")
    if not weights:
        configured = search_config.get("weights") or {}
        weights = {dim: w for dim, w in configured.items() if dim in tree.dimensions}
    return max_distance, weights or None


def coerce_id(tree: KDTree, raw: Optional[str]) -> Any:
    """Retrouve le type d'un identifiant saisi en texte (les identifiants JSON peuvent être numériques)."""
    if raw is None or tree.find(raw) is not None:
        return raw
    for convert in (int, float):
        try:
            value = convert(raw)
        except ValueError:
            continue
        if tree.find(value) is not None:
            return value
    return raw


def open_tree(input_file: str, config_manager: ConfigManager) -> KDTree:
    """Charge un arbre sauvegardé, ou le construit à la volée depuis un fichier de points."""
    extension = os.path.splitext(input_file)[1].lower()
    if extension in (".json", ".csv"):
        return build_tree_from_file(input_file, config=config_manager.config, verbose=True)
    return load_tree(input_file)


def neighbors_command(args: argparse.Namespace) -> int:
    """
    Commande pour trouver le plus proche voisin de chaque point.

    Args:
        args: Arguments de ligne de commande

    Returns:
        int: Code de retour (0 pour succès, autre pour erreur)
    """
    config_manager = ConfigManager(args.config)

    try:
        n_jobs = args.n_jobs if args.n_jobs is not None else config_manager.get("search", "n_jobs", 1)

        print(f"🔍 Plus proches voisins KDGeo...")
        print(f"  - Entrée: {args.input_file}")
        print(f"  - Sortie: {args.out_file}")

        if not os.path.exists(args.input_file):
            print(f"❌ Fichier introuvable: {args.input_file}")
            return 1

        tree = open_tree(args.input_file, config_manager)
        max_distance, weights = resolve_search_params(args, config_manager, tree)
        print(f"  - Distance maximale: {max_distance}")
        print(f"  - Poids: {weights}")
        searcher = Searcher(tree, max_distance, weights, n_jobs=n_jobs, verbose=True)
        pairs = searcher.nearest_neighbors(show_progress=args.progress)
        write_neighbors(pairs, args.out_file, tree.dimensions)

    except Exception as e:
        print(f"\n❌ Erreur: {str(e)}")
        return 1

    return 0


def query_command(args: argparse.Namespace) -> int:
    """
    Commande pour chercher le plus proche voisin d'une position.

    Args:
        args: Arguments de ligne de commande

    Returns:
        int: Code de retour (0 pour succès, autre pour erreur)
    """
    config_manager = ConfigManager(args.config)

    try:
        position = parse_assignments(args.at, "--at")
        show_trace = args.trace or config_manager.get("search", "trace", False)

        tree = open_tree(args.tree_file, config_manager)
        max_distance, weights = resolve_search_params(args, config_manager, tree)
        searcher = Searcher(tree, max_distance, weights)
        self_id = coerce_id(tree, args.self_id)

        trace = SearchTrace() if show_trace else None
        result = searcher.nearest(position, self_id=self_id, trace=trace)

        if trace is not None:
            print("\n🧭 Trace de la recherche:")
            print(trace.format())

        if result is None:
            print(f"\n∅ Aucun voisin à moins de {max_distance}")
        else:
            coordinates = ", ".join(f"{dim}={value}" for dim, value in zip(tree.dimensions, result.coordinates))
            print(f"\n📍 Plus proche voisin: {result.id!r} ({coordinates})")
            print(f"   → distance: {result.distance:.6g}")

    except Exception as e:
        print(f"\n❌ Erreur: {str(e)}")
        return 1

    return 0
